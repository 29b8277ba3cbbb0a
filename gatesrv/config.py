"""INI configuration access with empty-string defaults for missing entries."""

from __future__ import annotations

import configparser
from collections.abc import Iterator, Mapping
from os import PathLike
from pathlib import Path


class SectionInfo:
    """Key/value pairs of one configuration section.

    Looking up a key that is not present yields an empty string.
    """

    def __init__(self, data: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def __getitem__(self, key: str) -> str:
        return self._data.get(key, "")

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def items(self) -> list[tuple[str, str]]:
        """Return the pairs sorted by key."""
        return sorted(self._data.items())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SectionInfo):
            return self._data == other._data
        return NotImplemented

    def __repr__(self) -> str:
        return f"SectionInfo({self._data!r})"


class ConfigMgr:
    """All sections of a configuration file.

    Looking up a section that is not present yields an empty section.
    """

    def __init__(self, sections: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._sections: dict[str, SectionInfo] = {
            name: SectionInfo(values) for name, values in (sections or {}).items()
        }

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> "ConfigMgr":
        """Read an INI file; raises FileNotFoundError or configparser.Error."""
        parser = configparser.ConfigParser(
            interpolation=None,
            comment_prefixes=(";", "#"),
            default_section="\x00no-defaults",
        )
        parser.optionxform = str  # keys are case-sensitive
        with Path(path).open(encoding="utf-8") as handle:
            parser.read_file(handle)
        return cls(
            {name: dict(parser.items(name)) for name in parser.sections()}
        )

    def __getitem__(self, section: str) -> SectionInfo:
        return self._sections.get(section, SectionInfo())

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._sections))

    def dump(self) -> str:
        """Render every section and its pairs, sorted, one pair per line."""
        lines: list[str] = []
        for name in sorted(self._sections):
            lines.append(f"[{name}]")
            lines.extend(f"{key}={value}" for key, value in self._sections[name].items())
        return "".join(line + "\n" for line in lines)