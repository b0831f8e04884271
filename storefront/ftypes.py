# storefront/ftypes.py
# Maybe и Either: разбор составных id и валидация форм оформления заказа.

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Значение, которого может не быть (например, id без разделителя магазина).
    Maybe.some(value) / Maybe.nothing() / Maybe.of(optional)
    """

    value: Optional[T]

    @staticmethod
    def some(value: T) -> "Maybe[T]":
        return Maybe(value)

    @staticmethod
    def nothing() -> "Maybe[None]":
        return Maybe(None)

    @staticmethod
    def of(value: Optional[T]) -> "Maybe[T]":
        return Maybe(value)

    def is_some(self) -> bool:
        return self.value is not None

    def is_none(self) -> bool:
        return self.value is None

    def map(self, fn: Callable[[T], U]) -> "Maybe[U]":
        return Maybe.some(fn(self.value)) if self.is_some() else Maybe.nothing()

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default

    def __repr__(self) -> str:
        return f"Some({self.value})" if self.is_some() else "Nothing"


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Left: сообщение об ошибке для пользователя, Right: проверенное значение.
    Цепочки проверок строятся через bind: первая ошибка останавливает цепочку.
    """

    is_left: bool
    value: Union[L, R]

    @staticmethod
    def left(value: L) -> "Either[L, R]":
        return Either(True, value)

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def map(self, fn: Callable[[R], U]) -> "Either[L, U]":
        return Either.right(fn(self.value)) if self.is_right else self  # type: ignore[return-value]

    def bind(self, fn: Callable[[R], "Either[L, U]"]) -> "Either[L, U]":
        return fn(self.value) if self.is_right else self  # type: ignore[return-value]

    def get_or_else(self, default: U) -> R | U:
        return self.value if self.is_right else default  # type: ignore[return-value]

    def get_or_raise(self, exc_type: Callable[[L], Exception]) -> R:
        """Right → значение, Left → исключение exc_type(сообщение)"""
        if self.is_left:
            raise exc_type(self.value)  # type: ignore[arg-type]
        return self.value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Left({self.value})" if self.is_left else f"Right({self.value})"
