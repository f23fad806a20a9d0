"""
Saga — Последовательное выполнение шагов с компенсациями

Каждый мутирующий шаг settlement регистрируется вместе с компенсирующим
действием. Шаги выполняются строго последовательно; при ошибке шага
компенсации уже выполненных шагов запускаются в обратном порядке, после
чего выбрасывается SettlementStepError с полным отчётом.

Ошибка компенсации не прерывает остальные компенсации: она логируется
(ERROR) и попадает в SettlementStepError.compensation_failures.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from bullion.settlement.errors import SettlementError, SettlementStepError

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SagaStep:
    """Выполненный шаг и его компенсация (None — шаг не требует отката)."""

    name: str
    compensation: Action | None


class Saga:
    """Журнал выполненных шагов одного settlement."""

    def __init__(self, name: str):
        self.name = name
        self._completed: list[SagaStep] = []

    @property
    def completed_steps(self) -> list[str]:
        return [step.name for step in self._completed]

    async def run(self, name: str, action: Action, compensation: Action | None = None) -> Any:
        """
        Выполнение шага.

        Ошибка до первого выполненного шага с доменным исключением
        (SettlementError) пробрасывается как есть: мутаций ещё не было.

        Returns:
            Результат action

        Raises:
            SettlementError: доменная ошибка до первой мутации
            SettlementStepError: ошибка после начала мутаций
        """
        try:
            result = await action()
        except Exception as e:
            if not self._completed and isinstance(e, SettlementError):
                raise
            raise await self._compensate(name, e) from e
        self._completed.append(SagaStep(name=name, compensation=compensation))
        return result

    async def _compensate(self, failed_step: str, cause: Exception) -> SettlementStepError:
        logger.error("%s: step '%s' failed after %s: %s",
                     self.name, failed_step, self.completed_steps, cause)

        compensated: list[str] = []
        failures: list[tuple[str, BaseException]] = []
        for step in reversed(self._completed):
            if step.compensation is None:
                continue
            try:
                await step.compensation()
            except Exception as comp_error:
                logger.error("%s: compensation for '%s' failed: %s", self.name, step.name, comp_error)
                failures.append((step.name, comp_error))
            else:
                compensated.append(step.name)

        self._completed.clear()
        return SettlementStepError(failed_step, cause, compensated, failures)
