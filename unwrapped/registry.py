# # Name -> class registry shared by page generators and widgets.

from __future__ import annotations

from typing import Callable, Dict, Generic, List, Type, TypeVar

T = TypeVar("T")


class Registry(Generic[T]):
    def __init__(self, kind: str):
        self.kind = kind
        self._entries: Dict[str, Type[T]] = {}

    def register(self, key: str) -> Callable[[Type[T]], Type[T]]:
        def deco(cls: Type[T]) -> Type[T]:
            if key in self._entries and self._entries[key] is not cls:
                raise KeyError(f"Duplicate {self.kind}: {key}")
            self._entries[key] = cls
            return cls
        return deco

    def get(self, key: str) -> Type[T]:
        if key not in self._entries:
            raise KeyError(f"Unknown {self.kind}: {key}. Available: {self.keys()}")
        return self._entries[key]

    def keys(self) -> List[str]:
        return sorted(self._entries)
