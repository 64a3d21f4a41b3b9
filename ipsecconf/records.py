from dataclasses import dataclass, field
from typing import List, Union

SECTION = "section"
VALUE = "value"


@dataclass
class RawRecord:
    """One node of a deserialised ipsec.conf / ipsec.secrets file.

    A section carries a list of child records in `value`, a plain entry
    carries a scalar string. The root of a file is an unnamed section.
    """
    name: str
    value: Union[str, List["RawRecord"]] = field(default_factory=list)
    kind: str = VALUE
    comment: str = ""

    @property
    def is_section(self) -> bool:
        return self.kind == SECTION or isinstance(self.value, list)

    @property
    def entries(self) -> List["RawRecord"]:
        if isinstance(self.value, list):
            return self.value
        return []


def section(name: str, entries: List[RawRecord] = None) -> RawRecord:
    return RawRecord(name=name or "", value=list(entries or []), kind=SECTION)


def value(name: str, text: str) -> RawRecord:
    return RawRecord(name=name or "", value="" if text is None else text, kind=VALUE)


def root(entries: List[RawRecord] = None) -> RawRecord:
    return section("", entries)
