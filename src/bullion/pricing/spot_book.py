"""
SpotPriceBook — Последние известные spot-цены с fallback

Внешний коллаборатор периодически доставляет снапшот metal → USD/oz.
Недоступность фида — восстановимая деградация: книга продолжает отдавать
последние известные цены (source="cache"), а до первого успешного
обновления — статические значения по умолчанию (source="default").
Ошибки фида логируются и никогда не пробрасываются.

Сделка фиксирует цену при построении запроса (flow.state_machine) и
не перечитывает книгу во время settlement.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from bullion import config
from bullion.core.domain.metal import Metal
from bullion.core.domain.spot import SpotPrices
from bullion.core.math.numerical_safeguards import is_valid_float

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SpotBookConfig:
    """Конфигурация книги spot-цен."""

    default_prices: Mapping[str, float] = field(
        default_factory=lambda: dict(config.DEFAULT_SPOT_PRICES)
    )
    max_age_seconds: float = config.SPOT_MAX_AGE_SECONDS


class SpotPriceBook:
    """Кэш spot-цен с fallback на последние известные и статические значения."""

    def __init__(
        self,
        book_config: SpotBookConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.config = book_config or SpotBookConfig()
        self._clock = clock

        defaults = {Metal(k): float(v) for k, v in self.config.default_prices.items()}
        self._snapshot = SpotPrices(
            prices=defaults, as_of=self._clock(), source=config.SPOT_SOURCE_DEFAULT
        )
        self._has_feed_data = False

    def snapshot(self) -> SpotPrices:
        """Текущий immutable снапшот (безопасно передавать в сделку)."""
        return self._snapshot

    def price(self, metal: Metal) -> float:
        return self._snapshot.price(metal)

    def update(self, prices: Mapping[Metal | str, float], as_of: datetime | None = None) -> SpotPrices:
        """
        Применение нового снапшота фида.

        Невалидные значения (NaN/Inf/отрицательные/неизвестный металл)
        пропускаются — для таких металлов остаётся прежняя цена.

        Returns:
            Новый снапшот
        """
        merged = dict(self._snapshot.prices)
        accepted = 0
        for key, value in prices.items():
            try:
                metal = Metal(key)
            except ValueError:
                logger.warning("Spot feed returned unknown metal %r, ignoring", key)
                continue

            try:
                price = float(value)
            except (TypeError, ValueError):
                price = float("nan")
            if not is_valid_float(price) or price < 0:
                logger.warning("Spot feed returned invalid %s price %r, keeping %.4f",
                               metal.value, value, merged.get(metal, 0.0))
                continue
            merged[metal] = price
            accepted += 1

        if accepted == 0:
            logger.warning("Spot feed snapshot contained no usable prices")
            return self._mark_cached()

        self._snapshot = SpotPrices(
            prices=merged, as_of=as_of or self._clock(), source=config.SPOT_SOURCE_FEED
        )
        self._has_feed_data = True
        return self._snapshot

    def refresh(self, fetch: Callable[[], Mapping[Metal | str, float]]) -> SpotPrices:
        """
        Опрос фида.

        Args:
            fetch: вызов фида, возвращающий metal → USD/oz

        Returns:
            Новый снапшот, либо последний известный при ошибке фида
        """
        try:
            prices = fetch()
        except Exception as e:
            logger.warning("Spot feed unavailable (%s), using %s prices", e,
                           "cached" if self._has_feed_data else "default")
            return self._mark_cached()
        return self.update(prices)

    def is_stale(self) -> bool:
        """Снапшот старше max_age_seconds или не получен из фида."""
        if not self._has_feed_data:
            return True
        age = (self._clock() - self._snapshot.as_of).total_seconds()
        return age > self.config.max_age_seconds

    def _mark_cached(self) -> SpotPrices:
        if self._has_feed_data and self._snapshot.source != config.SPOT_SOURCE_CACHE:
            self._snapshot = self._snapshot.model_copy(update={"source": config.SPOT_SOURCE_CACHE})
        return self._snapshot
