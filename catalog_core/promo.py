import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Tuple

from .domain import PromoCode
from .ftypes import Either

logger = logging.getLogger(__name__)


class RejectionReason(Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_CURRENTLY_VALID = "not_currently_valid"
    LOOKUP_FAILED = "lookup_failed"


MESSAGES = {
    RejectionReason.NOT_FOUND: "Kode promo tidak ditemukan.",
    RejectionReason.INACTIVE: "Kode promo tidak aktif.",
    RejectionReason.NOT_CURRENTLY_VALID: "Kode promo tidak berlaku saat ini.",
    RejectionReason.LOOKUP_FAILED: "Gagal memeriksa kode promo, silakan coba lagi.",
}


@dataclass(frozen=True)
class PromoRejection:
    reason: RejectionReason
    code: str

    @property
    def message(self) -> str:
        return MESSAGES[self.reason]


def is_within_window(promo: PromoCode, today: date) -> bool:
    """Окно включает и день начала, и весь день окончания"""
    return promo.start_date <= today <= promo.end_date


def validate_promo_code(
    code: str, today: date, known_codes: Iterable[PromoCode]
) -> Either[PromoRejection, PromoCode]:
    """
    Можно ли погасить код сегодня.
    Совпадение точное, с учётом регистра; пробелы по краям срезаются.
    """
    entered = (code or "").strip()
    matches = tuple(filter(lambda p: p.code == entered, known_codes))

    if not matches:
        return Either.left(PromoRejection(RejectionReason.NOT_FOUND, entered))
    if len(matches) > 1:
        # коды уникальны в хранилище; дубль означает битый ответ
        logger.warning("promo code %r matched %d rows", entered, len(matches))
        return Either.left(PromoRejection(RejectionReason.LOOKUP_FAILED, entered))

    promo = matches[0]
    if not promo.is_active:
        return Either.left(PromoRejection(RejectionReason.INACTIVE, entered))
    if not is_within_window(promo, today):
        return Either.left(PromoRejection(RejectionReason.NOT_CURRENTLY_VALID, entered))
    return Either.right(promo)


def redeem_promo_code(
    code: str, today: date, lookup: Callable[[str], Tuple[PromoCode, ...]]
) -> Either[PromoRejection, PromoCode]:
    """
    Проверка через внешний поиск по точному коду.
    Сбой поиска не фатален: Left(LOOKUP_FAILED), покупатель может отправить код снова.
    """
    entered = (code or "").strip()
    try:
        rows = lookup(entered)
    except Exception:
        logger.exception("promo code lookup failed for %r", entered)
        return Either.left(PromoRejection(RejectionReason.LOOKUP_FAILED, entered))
    return validate_promo_code(entered, today, rows)
