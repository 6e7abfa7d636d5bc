"""
Repository contracts shared by every storage backend.

Pages come back as plain dicts (see ``pagebuilder.normalizers``) so callers
never see ORM rows or raw documents. A missing record is ``None`` (or
``False`` for delete), never an exception.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pagebuilder.domain.lifecycle.page import PUBLISHED
from pagebuilder.normalizers.widget import widget_tree

PageData = Dict[str, Any]


class RepositoryInterface(ABC):
    """Basic CRUD over one aggregate."""

    @abstractmethod
    def find(self, id) -> Optional[PageData]:
        """Find a record by id."""

    @abstractmethod
    def all(self) -> List[PageData]:
        """Every record, in backend-natural order."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> PageData:
        """Validate, assign an id, persist and return the stored record."""

    @abstractmethod
    def update(self, id, data: Dict[str, Any]) -> Optional[PageData]:
        """Partial merge. Fields absent from ``data`` are left alone."""

    @abstractmethod
    def delete(self, id) -> bool:
        """Delete the record and everything it owns."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables / indexes the backend relies on."""


class PageRepositoryInterface(RepositoryInterface):
    """
    Page aggregate: the page row/document plus its metatags and widgets.

    Widget and metatag mutators share one contract across backends:

    - widgets are an ordered sequence; index is the position in that sequence
    - out-of-bounds indexes are silent no-ops (the page is returned unchanged)
    - every mutator returns the refreshed page with widgets and metatags,
      or None when the page does not exist
    - ``expected_updated_at`` is an optional version token; when it is older
      than the stored page, ConcurrencyConflict is raised and nothing is written
    """

    @abstractmethod
    def find_by_slug(self, slug: str) -> Optional[PageData]:
        pass

    @abstractmethod
    def get_by_status(self, status: str) -> List[PageData]:
        pass

    def get_published(self) -> List[PageData]:
        return self.get_by_status(PUBLISHED)

    @abstractmethod
    def with_widgets(self, id) -> Optional[PageData]:
        pass

    @abstractmethod
    def with_metatags(self, id) -> Optional[PageData]:
        pass

    def widget_tree(self, id) -> Optional[List[PageData]]:
        """Widgets of the page as a forest of nested ``children`` lists."""
        page = self.with_widgets(id)
        if page is None:
            return None
        return widget_tree(page["widgets"])

    # Widgets

    @abstractmethod
    def add_widget(self, page_id, widget, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def update_widget(self, page_id, index: int, data, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def remove_widget(self, page_id, index: int, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def update_widget_by_id(self, page_id, widget_id, data, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def remove_widget_by_id(self, page_id, widget_id, expected_updated_at=None) -> Optional[PageData]:
        pass

    # Metatags

    @abstractmethod
    def add_metatag(self, page_id, name: str, content: str, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def set_metatag(self, page_id, name: str, content: str, expected_updated_at=None) -> Optional[PageData]:
        pass

    @abstractmethod
    def get_metatag(self, page_id, name: str) -> Optional[str]:
        pass


class GlobalSettingsRepository(ABC):
    """Process-wide key/value settings, independent of pages."""

    @abstractmethod
    def get(self, key: str, default=None) -> Any:
        """Stored value, or ``default`` when missing or stored as None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Upsert by key."""

    @abstractmethod
    def all(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def ensure_schema(self) -> None:
        pass
