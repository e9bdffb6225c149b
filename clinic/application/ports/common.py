from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

T = TypeVar("T")


@dataclass
class PagedResult(Generic[T]):
    items: List[T] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20
