"""Class-scoped views over the application cache."""

import re
from typing import Any, Optional

from app.infrastructure.cache.app_cache import AppCache


class ClassScopedCache:
    """Cache entries keyed ``<namespace>:class:<class_id>:<suffix>``."""

    namespace = "class-scoped"

    def __init__(self, cache: AppCache, ttl: Optional[int] = None):
        self.cache = cache
        self.ttl = ttl

    def key(self, class_id: int, suffix: str = "all") -> str:
        return f"{self.namespace}:class:{class_id}:{suffix}"

    def get(self, class_id: int, suffix: str = "all") -> Optional[Any]:
        return self.cache.get(self.key(class_id, suffix))

    def set(self, class_id: int, value: Any, suffix: str = "all") -> bool:
        return self.cache.set(self.key(class_id, suffix), value, self.ttl)

    def invalidate_class(self, class_id: int) -> int:
        """Drop every entry of one class; returns the number of keys removed."""
        prefix = re.escape(f"{self.namespace}:class:{class_id}:")
        return self.cache.invalidate(f"^{prefix}")


class ExamVisibilityCache(ClassScopedCache):
    """Which exams each class may see."""
    namespace = "exam-visibility"


class SubjectAssignmentCache(ClassScopedCache):
    """Which subjects are assigned to each class."""
    namespace = "subject-assignment"
