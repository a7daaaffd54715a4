"""
Models/Issue.py — The Issue record describing one detected vulnerability.

Detection modules hand over a loosely-structured options payload; :class:`Issue`
folds it into a fixed set of validated fields, derives the CWE reference URL,
and exposes the result three ways:

  - named attributes (``issue.severity``, ``issue.url`` …)
  - generic keyed access (``get`` / ``set`` / ``remove`` and ``issue[key]``)
  - full-record iteration (``for_each_field`` / ``to_map`` / ``dict(issue)``)

Construction and the generic setter never raise: a payload field that is
unknown or carries a value of the wrong shape is skipped, and its key is
recorded in :attr:`Issue.skipped_keys`.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Iterator, Optional

#: Prefix of every derived ``weakness_url``.
CWE_URL_BASE = "http://cwe.mitre.org/data/definitions/"

#: Short keys used by older module payloads, mapped to current field names.
FIELD_ALIASES: dict[str, str] = {
    "mod_name": "module_name",
    "internal_modname": "internal_module_name",
    "var": "variable_name",
    "elem": "element",
    "injected": "injected_value",
    "regexp": "match_pattern",
    "regexp_match": "matched_text",
    "cwe": "weakness_id",
    "cwe_url": "weakness_url",
    "cvssv2": "cvss_score",
    "verification": "verification_required",
    "metasploitable": "exploit_module",
    "opts": "raw_options",
    "_hash": "content_hash",
}

# Payload keys handled by the constructor itself rather than by a field.
_RESERVED_KEYS = frozenset({"issue"})

# Returned by a coercer to leave the stored value untouched.
_KEEP = object()


class Severity(str, Enum):
    """Qualitative risk levels an :class:`Issue` can be assigned."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFORMATIONAL = "Informational"


class Element(str, Enum):
    """The kind of HTTP surface an issue was found in."""

    LINK = "link"
    FORM = "form"
    COOKIE = "cookie"
    HEADER = "header"
    BODY = "body"
    PATH = "path"
    SERVER = "server"


# ---------------------------------------------------------------------------
# Text normalisation
# ---------------------------------------------------------------------------


def encode(value: Any) -> Any:
    """Return *value* as valid UTF-8 text if it is textual.

    Invalid sequences (undecodable bytes, lone surrogates) are replaced
    rather than rejected.  Non-textual values are returned unchanged.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value.encode("utf-8", errors="replace").decode("utf-8")
    return value


def _field_name(key: Any) -> str:
    key = str(key)
    return FIELD_ALIASES.get(key, key)


# ---------------------------------------------------------------------------
# Field coercers: raise TypeError or ValueError to reject a value
# ---------------------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"expected text, got {type(value).__name__}")


def _pattern_text(value: Any) -> str:
    if isinstance(value, re.Pattern):
        value = value.pattern
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    raise TypeError(f"expected a pattern, got {type(value).__name__}")


def _match_pattern(value: Any) -> Any:
    if value is None:
        return _KEEP
    return _pattern_text(value)


def _severity(value: Any) -> Optional[str]:
    return None if value is None else Severity(value).value


def _element(value: Any) -> Optional[str]:
    return None if value is None else Element(value).value


def _tags(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, list) and all(isinstance(t, str) for t in value):
        return list(value)
    raise TypeError("tags must be a list of strings")


def _mapping(value: Any) -> Optional[dict]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a mapping, got {type(value).__name__}")
    return dict(value)


def _headers(value: Any) -> Optional[dict]:
    headers = _mapping(value)
    if headers is None:
        return None
    # Request/response maps are copied so later changes by the caller
    # cannot reach the stored record.
    for part in ("request", "response"):
        if isinstance(headers.get(part), Mapping):
            headers[part] = dict(headers[part])
    return headers


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a bool, got {type(value).__name__}")
    return value


def _sequence(value: Any) -> Optional[list]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    return list(value)


def _options(value: Any) -> Any:
    if value is None:
        return _KEEP
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a mapping, got {type(value).__name__}")
    options = dict(value)
    options["match_pattern"] = _pattern_text(options.get("match_pattern"))
    if "regexp" in options:
        options["regexp"] = _pattern_text(options["regexp"])
    options.setdefault("matched", False)
    return options


# ---------------------------------------------------------------------------
# Field descriptor
# ---------------------------------------------------------------------------


class IssueField:
    """A named attribute of :class:`Issue` whose setter validates its value.

    Values live in the owning record's ``_values`` dict; a field that has
    never been assigned (or was removed) reads as ``None``.
    """

    def __init__(self, coerce: Optional[Callable[[Any], Any]] = None) -> None:
        self.coerce = coerce
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, issue: Optional[Issue], owner: Optional[type] = None) -> Any:
        if issue is None:
            return self
        return issue._values.get(self.name)

    def __set__(self, issue: Issue, value: Any) -> None:
        if self.coerce is not None:
            value = self.coerce(value)
            if value is _KEEP:
                return
        issue._values[self.name] = value

    def __delete__(self, issue: Issue) -> None:
        if self.name not in issue._values:
            raise AttributeError(self.name)
        del issue._values[self.name]


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


class Issue:
    """A single detected vulnerability.

    Usage::

        issue = Issue({
            "name": "XSS",                       # module name
            "references": {"OWASP": "https://owasp.org/..."},
            "issue": {"name": "Cross-Site Scripting", "severity": "High",
                      "weakness_id": "79", "url": url, "variable_name": "q"},
        })
        issue.weakness_url      # 'http://cwe.mitre.org/data/definitions/79.html'
        issue.to_map()          # every field currently set, in declaration order
    """

    #: Names of all schema fields in declaration order (filled in below).
    FIELDS: tuple[str, ...] = ()

    # ── Identity / classification ─────────────────────────────────────────────
    name = IssueField(_text)
    """The name of the issue."""

    module_name = IssueField(_text)
    """Name of the module that detected the issue."""

    internal_module_name = IssueField(_text)
    """Low-level key of the detecting module."""

    tags = IssueField(_tags)

    # ── Location ──────────────────────────────────────────────────────────────
    url = IssueField(_text)
    """The vulnerable URL."""

    variable_name = IssueField(_text)
    """The vulnerable input parameter."""

    element = IssueField(_element)
    """One of :class:`Element`."""

    method = IssueField(_text)
    """HTTP method of the request that revealed the issue."""

    # ── Evidence ──────────────────────────────────────────────────────────────
    injected_value = IssueField(_text)
    """The injected data that revealed the issue."""

    id = IssueField(_text)
    """The literal string that proved the issue."""

    match_pattern = IssueField(_match_pattern)
    """Pattern that identified the issue, always stored as text."""

    matched_text = IssueField(_text)
    """The data matched by :attr:`match_pattern`."""

    headers = IssueField(_headers)
    """``{"request": {...}, "response": {...}}`` exchanged during the attack."""

    response = IssueField(_text)
    """Raw body of the response to the attack."""

    # ── Severity / risk ───────────────────────────────────────────────────────
    severity = IssueField(_severity)
    """One of :class:`Severity`."""

    cvss_score = IssueField(_text)
    weakness_id = IssueField(_text)
    """CWE identifier, e.g. ``"79"``."""

    weakness_url = IssueField(_text)
    """Derived from :attr:`weakness_id` at construction time."""

    # ── Remediation ───────────────────────────────────────────────────────────
    description = IssueField(_text)
    references = IssueField(_mapping)
    """Label → URL."""

    remedy_guidance = IssueField(_text)
    remedy_code = IssueField(_text)

    # ── Meta ──────────────────────────────────────────────────────────────────
    variations = IssueField(_sequence)
    """Filled in by :meth:`Reporter.Reporter.aggregate_variations`."""

    verification_required = IssueField(_flag)
    """Does the issue need manual verification?"""

    exploit_module = IssueField(_text)
    """Exploitation-framework module, e.g. ``exploit/unix/webapp/php_include``."""

    content_hash = IssueField()
    """Opaque deduplication key assigned by downstream collaborators."""

    raw_options = IssueField(_options)
    """The module options the issue was raised with (see :meth:`set_opts`)."""

    def __init__(self, options: Optional[Mapping[str, Any]] = None) -> None:
        self._values: dict[str, Any] = {}
        self._extras: dict[str, Any] = {}
        #: Payload keys construction could not assign (unknown or rejected).
        self.skipped_keys: list[str] = []

        self.verification_required = False

        if not isinstance(options, Mapping):
            options = {}
        nested = options.get("issue")
        if not isinstance(nested, Mapping):
            nested = {}

        self._merge(options)
        self._merge(nested)

        if self.weakness_id:
            self.weakness_url = f"{CWE_URL_BASE}{self.weakness_id}.html"
        else:
            self._values.pop("weakness_url", None)

        # The top-level name identifies the detecting module unless an
        # explicit module_name from the payload was assigned above.
        if "module_name" not in self._values:
            self._try_assign("module_name", encode(options.get("name")))

        references = options.get("references")
        self.references = references if isinstance(references, Mapping) else {}

    # ------------------------------------------------------------------
    # Named setters
    # ------------------------------------------------------------------

    def set_opts(self, options: Optional[Mapping[str, Any]]) -> None:
        """Store the raw module options this issue was raised with.

        ``match_pattern`` is coerced to text and ``matched`` defaults to
        *False*.  The caller's mapping is left untouched; *None* is a no-op.
        """
        self.raw_options = options

    # ------------------------------------------------------------------
    # Generic keyed access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return the value stored under *key*, or *None*."""
        name = _field_name(key)
        if name in self._values:
            return self._values[name]
        return self._extras.get(name)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, never raising.

        Known fields go through their setter; a value the setter rejects is
        stored as-is.  Unknown keys become ad-hoc fields that are exported
        alongside the schema fields.
        """
        value = encode(value)
        name = _field_name(key)
        if name not in self.FIELDS:
            self._extras[name] = value
        elif not self._try_assign(name, value):
            self._values[name] = value

    def remove(self, key: str) -> None:
        """Delete the field stored under *key*; ``KeyError`` if there is none."""
        name = _field_name(key)
        if name in self._values:
            del self._values[name]
        elif name in self._extras:
            del self._extras[name]
        else:
            raise KeyError(key)

    __getitem__ = get
    __setitem__ = set
    __delitem__ = remove

    def __contains__(self, key: object) -> bool:
        name = _field_name(key)
        return name in self._values or name in self._extras

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def for_each_field(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(name, value)`` for every field currently set.

        Schema fields come first in declaration order, followed by ad-hoc
        fields in the order they were added.
        """
        for name in self.FIELDS:
            if name in self._values:
                yield name, self._values[name]
        yield from self._extras.items()

    def to_map(self) -> dict[str, Any]:
        """Return every field currently set as a plain dict."""
        return dict(self.for_each_field())

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return self.for_each_field()

    def __repr__(self) -> str:
        return (
            f"Issue(name={self.name!r}, severity={self.severity!r}, "
            f"url={self.url!r})"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _merge(self, payload: Mapping[Any, Any]) -> None:
        for key, value in payload.items():
            if key in _RESERVED_KEYS:
                continue
            if not self._try_assign(str(key).lower(), encode(value)):
                self.skipped_keys.append(str(key))

    def _try_assign(self, key: str, value: Any) -> bool:
        """Route *value* through the setter for *key*; report success."""
        name = _field_name(key)
        if name not in self.FIELDS:
            return False
        try:
            setattr(self, name, value)
        except (TypeError, ValueError):
            return False
        return True


Issue.FIELDS = tuple(
    name for name, attr in vars(Issue).items() if isinstance(attr, IssueField)
)
