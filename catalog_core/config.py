"""
Конфигурация витрины из переменных окружения (.env подхватывается автоматически)
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SEED_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "seed.json"
)
DEFAULT_CUTOFF_HOUR = 15


@dataclass(frozen=True)
class ShopConfig:
    seed_path: str = DEFAULT_SEED_PATH
    whatsapp_number: str = "6285187230007"
    shipping_cutoff_hour: int = DEFAULT_CUTOFF_HOUR  # заказ до 15:00 отправляется завтра
    log_level: str = "INFO"


def _cutoff_hour(raw: str) -> int:
    """Час отсечки 0..23; мусор в переменной заменяется значением по умолчанию"""
    try:
        hour = int(raw)
    except ValueError:
        hour = -1
    if not 0 <= hour <= 23:
        logger.warning(
            "SHOP_SHIPPING_CUTOFF_HOUR=%r is not an hour, using %d", raw, DEFAULT_CUTOFF_HOUR
        )
        return DEFAULT_CUTOFF_HOUR
    return hour


def load_config() -> ShopConfig:
    """Читает SHOP_* переменные, недостающие берутся по умолчанию"""
    load_dotenv()
    return ShopConfig(
        seed_path=os.getenv("SHOP_SEED_PATH", DEFAULT_SEED_PATH),
        whatsapp_number=os.getenv("SHOP_WHATSAPP_NUMBER", "6285187230007"),
        shipping_cutoff_hour=_cutoff_hour(
            os.getenv("SHOP_SHIPPING_CUTOFF_HOUR", str(DEFAULT_CUTOFF_HOUR))
        ),
        log_level=os.getenv("SHOP_LOG_LEVEL", "INFO").upper(),
    )
