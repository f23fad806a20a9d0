"""
Settlement errors

Иерархия исключений settlement. InsufficientFundsError / HoldingNotFoundError /
InsufficientHoldingError возникают до первой мутации; SettlementStepError —
после неё (с отчётом о выполненных компенсациях).
"""


class SettlementError(Exception):
    pass


class InsufficientFundsError(SettlementError):
    def __init__(self, balance: float, required: float):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient funds: balance {balance:.2f} USD, required {required:.2f} USD")


class HoldingNotFoundError(SettlementError):
    def __init__(self, holding_id: str):
        self.holding_id = holding_id
        super().__init__(f"Holding {holding_id} not found")


class InsufficientHoldingError(SettlementError):
    def __init__(self, holding_id: str, available: int, requested: int):
        self.holding_id = holding_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Holding {holding_id}: requested {requested} units, only {available} available"
        )


class StaleHoldingError(SettlementError):
    def __init__(self, holding_id: str, expected_version: int, actual_version: int):
        self.holding_id = holding_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Holding {holding_id} changed concurrently: "
            f"expected version {expected_version}, found {actual_version}"
        )


class SettlementStepError(SettlementError):
    """
    Ошибка шага settlement после начала мутаций.

    Attributes:
        step: имя упавшего шага
        compensated: шаги, для которых компенсация выполнена (в порядке выполнения)
        compensation_failures: (шаг, исключение) для неудавшихся компенсаций;
            непустой список означает, что состояние требует ручной сверки
    """

    def __init__(
        self,
        step: str,
        cause: BaseException,
        compensated: list[str],
        compensation_failures: list[tuple[str, BaseException]],
    ):
        self.step = step
        self.cause = cause
        self.compensated = compensated
        self.compensation_failures = compensation_failures
        message = f"Settlement step '{step}' failed: {cause}; compensated {compensated}"
        if compensation_failures:
            failed = [name for name, _ in compensation_failures]
            message += f"; compensation FAILED for {failed} (manual reconciliation required)"
        super().__init__(message)

    @property
    def requires_reconciliation(self) -> bool:
        return bool(self.compensation_failures)
