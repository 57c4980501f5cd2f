"""Properties file with mandatory lookups.

Release steps read their credentials and paths from Java-style ``.properties``
files. ``MandatoryProperties`` behaves like a read-only mapping, but its
lookups raise when a key is missing or has no value instead of returning a
default.

Example:
    props = MandatoryProperties.from_file("config.properties")
    user = props.get_mandatory_property("cosmic.user")
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from pathlib import Path

_SEPARATOR = re.compile(r"(?<!\\)[=:\s]")


class PropertyNotPresentError(KeyError):
    """Raised when a property key is not in the set."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"The property {self.key} is not in this set of Properties."


class PropertyHasNoValueError(ValueError):
    """Raised when a mandatory property is present but blank."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"The property {key} is present in this set of Properties, "
            "but no value has been set for it."
        )
        self.key = key


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``key=value`` / ``key: value`` / ``key value`` lines.

    Blank lines and lines starting with ``#`` or ``!`` are ignored. A trailing
    backslash continues the value on the next line.
    """
    properties: dict[str, str] = {}
    pending = ""
    for raw in text.splitlines():
        line = raw.strip() if not pending else raw.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        if line.endswith("\\") and not line.endswith("\\\\"):
            pending += line[:-1]
            continue
        line = pending + line
        pending = ""

        match = _SEPARATOR.search(line)
        if match is None:
            properties[line] = ""
            continue
        key = line[: match.start()]
        value = line[match.end() :].lstrip()
        if match.group() not in "=:" and value[:1] in ("=", ":"):
            value = value[1:].lstrip()
        properties[key.replace("\\", "")] = value
    if pending:
        properties.setdefault(pending, "")
    return properties


class MandatoryProperties(Mapping[str, str]):
    """Read-only properties whose lookups never silently fall back."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    @classmethod
    def from_file(cls, path: str | Path, encoding: str = "utf-8") -> MandatoryProperties:
        return cls(parse_properties(Path(path).read_text(encoding=encoding)))

    @classmethod
    def from_string(cls, text: str) -> MandatoryProperties:
        return cls(parse_properties(text))

    def __getitem__(self, key: str) -> str:
        return self.get_property(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_property(self, key: str) -> str:
        """Value of ``key``, which may be blank.

        Raises:
            PropertyNotPresentError: If ``key`` is not in the set
        """
        try:
            return self._values[key]
        except KeyError:
            raise PropertyNotPresentError(key) from None

    def get_mandatory_property(self, key: str) -> str:
        """Value of ``key``, which must be non-blank.

        Raises:
            PropertyNotPresentError: If ``key`` is not in the set
            PropertyHasNoValueError: If the value is blank
        """
        value = self.get_property(key)
        if not value.strip():
            raise PropertyHasNoValueError(key)
        return value
