"""Element locator and text helpers for parsed markup."""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag


def _nth_of_type(element: Tag) -> int | None:
    """Return 1-based position among same-tag siblings, or None when unique."""
    parent = element.parent
    if parent is None:
        return None
    siblings = parent.find_all(element.name, recursive=False)
    if len(siblings) < 2:
        return None
    for index, sibling in enumerate(siblings, start=1):
        if sibling is element:
            return index
    return None


def _id_is_unique(element: Tag) -> bool:
    element_id = element.get("id")
    if not isinstance(element_id, str) or not element_id.strip() or " " in element_id:
        return False
    root = element
    while root.parent is not None:
        root = root.parent
    return len(root.find_all(id=element_id)) == 1


def css_selector(element: Tag) -> str:
    """Build a deterministic CSS selector for an element.

    Elements with a unique id are addressed as ``#id``; other elements get a
    child-combinator path rooted at the nearest ancestor with a unique id, or
    at ``body``/``head``.
    """
    if element.name in {"html", "head", "body"}:
        return element.name
    if _id_is_unique(element):
        return f"#{element['id']}"

    parts: list[str] = []
    current: Tag | None = element
    while current is not None and not isinstance(current, BeautifulSoup):
        if current.name == "html":
            break
        if current is not element and _id_is_unique(current):
            parts.append(f"#{current['id']}")
            break
        position = _nth_of_type(current)
        parts.append(current.name if position is None else f"{current.name}:nth-of-type({position})")
        if current.name in {"body", "head"}:
            break
        current = current.parent
    return " > ".join(reversed(parts))


def text_of(element: Tag) -> str:
    """Return the element's visible text collapsed to single spaces."""
    return " ".join(element.get_text(" ", strip=True).split())


def attr_text(element: Tag, name: str) -> str:
    """Return an attribute as stripped text; multi-valued attributes are joined."""
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value).strip()
    return str(value).strip()


def has_attr_value(element: Tag, name: str) -> bool:
    return bool(attr_text(element, name))
