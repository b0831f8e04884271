from typing import Tuple

from .domain import WriteAttempt


class StorefrontError(Exception):
    """Базовая ошибка витрины"""


class ConfigurationError(StorefrontError):
    """Не задана ни одна пара владелец/магазин"""


class FetchError(StorefrontError):
    """Ошибка чтения из хранилища документов"""


class ValidationError(StorefrontError):
    """Поле формы оформления не прошло проверку"""


class AssignmentError(StorefrontError):
    """Позиции корзины не удалось распределить по магазинам"""


class NotFoundError(StorefrontError):
    """Товар или заказ не найден"""


class WriteError(StorefrontError):
    """
    Ошибка записи заказа или ссылки.
    attempts: все попытки по порядку, включая уже записанные заказы:
    откат не выполняется.
    """

    def __init__(self, message: str, attempts: Tuple[WriteAttempt, ...] = ()):
        super().__init__(message)
        self.attempts = attempts

    @property
    def completed(self) -> Tuple[WriteAttempt, ...]:
        return tuple(a for a in self.attempts if a.succeeded)

    @property
    def written(self) -> Tuple[WriteAttempt, ...]:
        """Попытки, после которых заказ есть в магазине (даже без ссылки покупателя)"""
        return tuple(a for a in self.attempts if a.order_id is not None)
