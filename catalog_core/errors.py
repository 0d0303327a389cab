"""
Исключения ядра витрины.
Ожидаемые отказы (промокод, доставка, загрузка для UI) идут через Either.left,
исключения — для нарушенных предусловий и сбоев источника данных.
"""


class StorefrontError(Exception):
    """Базовое исключение витрины"""


class DataFetchError(StorefrontError):
    """Источник данных недоступен или вернул мусор"""


class PricingError(StorefrontError):
    """Нарушено предусловие расчёта цены"""
