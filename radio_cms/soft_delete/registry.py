"""
Content type registry.

Maps the type tags used in URLs and the CLI ("articles", "episodes", ...) to
the model that stores them and the per-type lifecycle settings. The service
never branches on a content type; everything type-specific lives here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Type

from .exceptions import UnknownContentTypeError
from .mixins import SoftDeleteMixin


@dataclass(frozen=True)
class ContentTypeDescriptor:
    """Lifecycle settings for one content type."""

    tag: str
    model: Type[Any]
    protected_default: bool = False
    file_url_field: Optional[str] = None

    def __post_init__(self) -> None:
        if not issubclass(self.model, SoftDeleteMixin):
            raise TypeError(
                f"{self.model.__name__} must use SoftDeleteMixin to be registered"
            )

    @property
    def label(self) -> str:
        """Singular label for messages ("articles" -> "article")."""
        return self.tag[:-1] if self.tag.endswith("s") else self.tag

    def build(self, **fields: Any) -> Any:
        """Instantiate the model, applying the type's protection default."""
        fields.setdefault("protected", self.protected_default)
        return self.model(**fields)

    def file_url(self, item: Any) -> Optional[str]:
        """URL of the stored file attached to an item, if the type has one."""
        if self.file_url_field is None:
            return None
        return getattr(item, self.file_url_field, None)


class ContentTypeRegistry:
    """Ordered registry of content types managed by the trash."""

    def __init__(self, descriptors: Optional[List[ContentTypeDescriptor]] = None):
        self._descriptors: Dict[str, ContentTypeDescriptor] = {}
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: ContentTypeDescriptor) -> None:
        """
        Register a content type.

        Args:
            descriptor: Descriptor for the type

        Raises:
            ValueError: If the tag is already registered
        """
        if descriptor.tag in self._descriptors:
            raise ValueError(f"Content type '{descriptor.tag}' already registered")
        self._descriptors[descriptor.tag] = descriptor

    def get(self, tag: str) -> ContentTypeDescriptor:
        """
        Look up a content type by tag.

        Raises:
            UnknownContentTypeError: If the tag is not registered
        """
        try:
            return self._descriptors[tag]
        except KeyError:
            raise UnknownContentTypeError(tag) from None

    def build(self, tag: str, **fields: Any) -> Any:
        """Instantiate a new item of the given type."""
        return self.get(tag).build(**fields)

    @property
    def tags(self) -> List[str]:
        return list(self._descriptors)

    def __contains__(self, tag: object) -> bool:
        return tag in self._descriptors

    def __iter__(self) -> Iterator[ContentTypeDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)


def default_registry() -> ContentTypeRegistry:
    """Registry of the five content types of the station site."""
    from ..content.models import Article, Episode, Event, Resource, Show

    return ContentTypeRegistry(
        [
            ContentTypeDescriptor("articles", Article, file_url_field="featured_image_url"),
            ContentTypeDescriptor("shows", Show, file_url_field="cover_image_url"),
            ContentTypeDescriptor("episodes", Episode, file_url_field="audio_url"),
            ContentTypeDescriptor("events", Event),
            ContentTypeDescriptor("resources", Resource, file_url_field="file_url"),
        ]
    )
