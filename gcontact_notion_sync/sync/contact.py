"""
Contact data model for Google Contacts to Notion synchronization.

Provides a normalized CanonicalContact representation with:
- Construction from Google People API connections
- Construction from Notion database pages
- Content equality independent of where a record came from
- Conversion to Notion page properties for create/update requests
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Maps canonical fields to the property names used in the Notion database
CONTACT_TO_NOTION_PROPERTIES = {
    "contact_id": "contactId",
    "full_name": "Name",
    "first_name": "First Name",
    "last_name": "Last Name",
    "organization": "Organization",
    "title": "Title",
}

# Notion property that holds the page title; everything else is rich text
TITLE_FIELD = "full_name"

CONTENT_FIELDS = tuple(CONTACT_TO_NOTION_PROPERTIES)


class ContactError(Exception):
    """Base class for contact construction errors."""

    pass


class MalformedSourceRecordError(ContactError):
    """Raised when a Google connection cannot be normalized into a contact."""

    pass


class ContactOrigin(Enum):
    """Which system a contact record was read from."""

    GOOGLE = "google"
    NOTION = "notion"


def _normalize_text(value: Any) -> Optional[str]:
    """Normalize empty strings to None."""
    if value is None or value == "":
        return None
    return value


@dataclass(frozen=True)
class CanonicalContact:
    """
    Normalized, immutable contact used for comparison.

    Attributes:
        origin: System the record was read from (not part of equality)
        raw: The original API record (not part of equality)
        contact_id: Google's per-person ID (e.g. "c12345"), the identity key
        full_name: Display name
        first_name: Given name
        last_name: Family name
        organization: Name of the first organization
        title: Job title at the first organization

    Usage:
        contact = contact_from_google(connection)
        page_contact = contact_from_notion(page)

        if not contact.content_equals(page_contact):
            properties = contact.to_notion_properties()
    """

    origin: ContactOrigin = field(compare=False)
    contact_id: Optional[str] = None
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization: Optional[str] = None
    title: Optional[str] = None
    raw: Optional[dict[str, Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        for name in CONTENT_FIELDS:
            value = getattr(self, name)
            if value == "":
                object.__setattr__(self, name, None)

    def content_equals(self, other: "CanonicalContact") -> bool:
        """
        Check whether two contacts carry the same synced data.

        Compares contact_id, full_name, first_name, last_name, organization
        and title. Origin and raw payload are ignored, so a Google contact and
        a Notion contact with the same values are equal.
        """
        return content_equals(self, other)

    def to_notion_properties(self) -> dict[str, Any]:
        """
        Convert the contact to Notion page properties.

        Returns:
            Dictionary keyed by Notion property name. Fields that are None
            are left out entirely so an update never blanks a property the
            Google contact doesn't supply.

        Example output::

            {
                'Name': {'title': [{'text': {'content': 'Jane Foe'}}]},
                'First Name': {'rich_text': [{'text': {'content': 'Jane'}}]},
                'contactId': {'rich_text': [{'text': {'content': 'c1'}}]},
            }
        """
        properties: dict[str, Any] = {}

        for attribute, property_name in CONTACT_TO_NOTION_PROPERTIES.items():
            value = getattr(self, attribute)
            if value is not None:
                kind = "title" if attribute == TITLE_FIELD else "rich_text"
                properties[property_name] = notion_text_property(value, kind)

        return properties

    def display_label(self) -> str:
        """Return a short human-readable label for logs and CLI output."""
        name = self.full_name or " ".join(
            p for p in (self.first_name, self.last_name) if p
        )
        return f"{name or '(no name)'} [{self.contact_id or '?'}]"


def content_equals(a: CanonicalContact, b: CanonicalContact) -> bool:
    """Return True if both contacts have equal content fields."""
    return all(getattr(a, name) == getattr(b, name) for name in CONTENT_FIELDS)


def notion_text_property(value: str, kind: str = "rich_text") -> dict[str, Any]:
    """
    Build a Notion text property value.

    Args:
        value: Text content
        kind: Notion property type, "rich_text" or "title"

    Returns:
        Property value such as {'rich_text': [{'text': {'content': value}}]}
    """
    return {kind: [{"text": {"content": value}}]}


class NotionPage:
    """
    Read helper for Notion database page objects.

    Hides the nesting of Notion property values so callers can read
    text properties by name.
    """

    def __init__(self, page: dict[str, Any]):
        self.page = page

    @property
    def page_id(self) -> Optional[str]:
        """Notion's ID for this page."""
        return self.page.get("id")

    @property
    def properties(self) -> dict[str, Any]:
        properties = self.page.get("properties")
        return properties if isinstance(properties, dict) else {}

    def get_text_property(self, name: str) -> Optional[str]:
        """
        Get the plain text value of a title or rich_text property.

        Args:
            name: Notion property name (e.g. "First Name")

        Returns:
            The first text run's plain_text, or None if the property is
            missing, empty, or not shaped like a text property
        """
        prop = self.properties.get(name)
        if prop is None:
            return None

        try:
            # "title" for the Name column, "rich_text" for the rest
            kind = prop["type"]
            value = prop[kind][0]["plain_text"]
        except (KeyError, IndexError, TypeError):
            return None

        return _normalize_text(value)


def is_google_connection_valid(connection: dict[str, Any]) -> bool:
    """
    Check whether a Google connection can be synced.

    A connection is eligible only if it has at least one name entry.
    """
    return bool(connection.get("names"))


def contact_from_google(connection: dict[str, Any]) -> CanonicalContact:
    """
    Create a CanonicalContact from a Google People API connection.

    Only the first name entry and the first organization entry are used.
    Callers must filter with is_google_connection_valid() first.

    Args:
        connection: Dictionary from the People API connections list

    Returns:
        CanonicalContact with origin GOOGLE

    Raises:
        MalformedSourceRecordError: If the resource name or names are unusable

    Example API response structure::

        {
            'resourceName': 'people/c12345',
            'names': [{'displayName': 'Jane Foe', 'givenName': 'Jane',
                       'familyName': 'Foe'}],
            'organizations': [{'name': 'Acme Corp', 'title': 'CEO'}]
        }
    """
    try:
        contact_id = connection["resourceName"].split("/")[1]
        primary_name = connection["names"][0]
        organizations = connection.get("organizations") or []
        primary_org = organizations[0] if organizations else {}
        values = {
            "full_name": primary_name.get("displayName"),
            "first_name": primary_name.get("givenName"),
            "last_name": primary_name.get("familyName"),
            "organization": primary_org.get("name"),
            "title": primary_org.get("title"),
        }
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise MalformedSourceRecordError(
            f"Malformed Google connection: {e!r}"
        ) from e

    if not contact_id:
        raise MalformedSourceRecordError(
            f"Google connection has no contact id: "
            f"{connection.get('resourceName')!r}"
        )

    return CanonicalContact(
        origin=ContactOrigin.GOOGLE, raw=connection, contact_id=contact_id, **values
    )


def contact_from_notion(page: dict[str, Any]) -> CanonicalContact:
    """
    Create a CanonicalContact from a Notion database page.

    Missing or oddly shaped properties become None rather than errors.

    Args:
        page: Page object returned by a Notion database query

    Returns:
        CanonicalContact with origin NOTION
    """
    notion_page = NotionPage(page)
    values = {
        attribute: notion_page.get_text_property(property_name)
        for attribute, property_name in CONTACT_TO_NOTION_PROPERTIES.items()
    }
    return CanonicalContact(origin=ContactOrigin.NOTION, raw=page, **values)


def construct_contact(
    record: dict[str, Any], origin: ContactOrigin
) -> CanonicalContact:
    """
    Create a CanonicalContact using the adapter for the declared origin.

    Args:
        record: Raw Google connection or Notion page
        origin: Which system the record came from

    Returns:
        CanonicalContact

    Raises:
        ValueError: If origin is not a known ContactOrigin
        MalformedSourceRecordError: If a Google record is unusable
    """
    if origin is ContactOrigin.GOOGLE:
        return contact_from_google(record)
    if origin is ContactOrigin.NOTION:
        return contact_from_notion(record)
    raise ValueError(f"Unknown contact origin: {origin!r}")
