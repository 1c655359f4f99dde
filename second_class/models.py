"""Data models for second-class activities."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")

DETAIL_ENDPOINT = "item/scItem/queryById"


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse a portal timestamp of the form ``YYYY-MM-DD HH:MM:SS``."""
    if not isinstance(value, str) or not _TIMESTAMP_RE.fullmatch(value):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("The start time should be earlier than the end time")

    @classmethod
    def parse(cls, start: Optional[str], end: Optional[str] = None) -> "TimeInterval":
        start_dt = parse_timestamp(start)
        end_dt = parse_timestamp(end) if end else start_dt
        return cls(start_dt, end_dt)

    def contains(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and self.end >= other.end

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start <= other.end and self.end >= other.start


class Status(Enum):
    APPLYING = 26
    APPLICATION_ENDED = 28
    HOUR_PUBLICATION_PENDING = 30
    HOUR_APPEND_PUBLICATION_PENDING = 31
    PUBLICATION_ENDED = 32
    HOUR_APPLICATION_PENDING = 33
    HOUR_APPROVED = 34
    HOUR_REJECTED = 35
    FINISHED = 40
    ABNORMALLY_FINISHED = -3
    UNKNOWN = -1

    @classmethod
    def _missing_(cls, value: object) -> "Status":
        return cls.UNKNOWN

    @classmethod
    def from_code(cls, code: Any) -> "Status":
        try:
            return cls(int(code))
        except (TypeError, ValueError, OverflowError):
            return cls.UNKNOWN

    @property
    def code(self) -> int:
        return self.value

    @property
    def text(self) -> str:
        return _STATUS_TEXT[self]


_STATUS_TEXT = {
    Status.APPLYING: "报名中",
    Status.APPLICATION_ENDED: "报名已结束",
    Status.HOUR_PUBLICATION_PENDING: "学时公示中",
    Status.HOUR_APPEND_PUBLICATION_PENDING: "追加学时公示",
    Status.PUBLICATION_ENDED: "公示已结束",
    Status.HOUR_APPLICATION_PENDING: "学时申请中",
    Status.HOUR_APPROVED: "学时审核通过",
    Status.HOUR_REJECTED: "学时驳回",
    Status.FINISHED: "结项",
    Status.ABNORMALLY_FINISHED: "异常结项",
    Status.UNKNOWN: "未知状态",
}


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Module:
    value: str
    text: str = field(default="", compare=False)

    ENDPOINT = "sys/dict/getDictItems/item_module"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Module":
        return cls(value=_str(data["value"]), text=_str(data.get("text")))


@dataclass(frozen=True)
class Label:
    id: str
    name: str = field(default="", compare=False)

    ENDPOINT = "paramdesign/scLabel/queryListLabel"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Label":
        return cls(id=_str(data["id"]), name=_str(data.get("name")))


@dataclass
class Department:
    """A node of the department tree.

    ``depth`` is 0 for the roots returned by the portal and -1 for
    departments projected out of an activity record (no tree position).
    """

    id: str
    name: str = field(default="", compare=False)
    children: List["Department"] = field(default_factory=list, compare=False)
    depth: int = field(default=0, compare=False)

    ENDPOINT = "sysdepart/sysDepart/queryTreeList"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], depth: int = 0) -> "Department":
        children = [cls.from_dict(c, depth + 1) for c in data.get("children") or []]
        return cls(
            id=_str(data["id"]),
            name=_str(data.get("departName")),
            children=children,
            depth=depth,
        )

    def search(self, name: str, max_depth: int = -1) -> List["Department"]:
        """Depth-first search for nodes whose name contains ``name``.

        Parents are listed before their children. Nodes deeper than
        ``max_depth`` are pruned unless ``max_depth`` is -1.
        """
        if max_depth != -1 and self.depth > max_depth:
            return []
        result = [self] if name in self.name else []
        for child in self.children:
            result.extend(child.search(name, max_depth))
        return result

    def find_one(self, name: str, max_depth: int = -1) -> Optional["Department"]:
        found = self.search(name, max_depth)
        return found[0] if found else None


def _opt_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _opt_float(value: Any) -> Optional[float]:
    # validHour arrives as a number, a string or {"source", "parsedValue"}
    if isinstance(value, dict):
        value = value.get("parsedValue", value.get("source"))
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _status_code(value: Any) -> int:
    code = _opt_int(value)
    return Status.UNKNOWN.code if code is None else code


# record key -> (attribute, converter)
_ACTIVITY_FIELDS = {
    "itemName": ("name", _str),
    "itemStatus": ("status_code", _status_code),
    "validHour": ("valid_hours", _opt_float),
    "applyNum": ("applicants", _opt_int),
    "peopleNum": ("applicant_limit", _opt_int),
    "booleanRegistration": ("registration", _opt_int),
    "needSignInfo": ("need_sign_info", _opt_str),
    "conceive": ("conceive", _opt_str),
    "baseContent": ("base_content", _opt_str),
    "itemCategory": ("category", _opt_str),
    "createTime": ("create_time_str", _opt_str),
    "applySt": ("apply_start", _opt_str),
    "applyEt": ("apply_end", _opt_str),
    "st": ("start_time", _opt_str),
    "et": ("end_time", _opt_str),
    "tel": ("tel", _opt_str),
}


@dataclass
class Activity:
    """A second-class activity as returned by the portal.

    Named fields hold the values the domain logic reads directly. All
    other keys of the record are kept in ``extra`` so that the
    classification accessors can project them later.
    """

    id: str
    name: str = ""
    status_code: int = Status.UNKNOWN.code
    valid_hours: Optional[float] = None
    applicants: Optional[int] = None
    applicant_limit: Optional[int] = None
    registration: Optional[int] = None
    need_sign_info: Optional[str] = None
    conceive: Optional[str] = None
    base_content: Optional[str] = None
    category: Optional[str] = None
    create_time_str: Optional[str] = None
    apply_start: Optional[str] = None
    apply_end: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    tel: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError(f"Activity record without id: {data!r}")
        kwargs: Dict[str, Any] = {"id": str(data["id"])}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "id":
                continue
            if key in _ACTIVITY_FIELDS:
                attr, convert = _ACTIVITY_FIELDS[key]
                kwargs[attr] = convert(value)
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["id"] = self.id
        for key, (attr, _) in _ACTIVITY_FIELDS.items():
            data[key] = getattr(self, attr)
        return data

    def status(self) -> Status:
        return Status.from_code(self.status_code)

    def create_time(self) -> datetime:
        return parse_timestamp(self.create_time_str)

    def apply_time(self) -> TimeInterval:
        return TimeInterval.parse(self.apply_start, self.apply_end)

    def hold_time(self) -> TimeInterval:
        return TimeInterval.parse(self.start_time, self.end_time)

    def applied(self) -> bool:
        return self.registration == 1

    def applyable(self) -> bool:
        return (
            self.status() is Status.APPLYING
            and not self.applied()
            and (self.applicants or 0) < (self.applicant_limit or 0)
        )

    def needs_sign_info(self) -> bool:
        return self.need_sign_info == "1"

    def is_series(self) -> bool:
        return self.category == "1"

    def module(self) -> Optional[Module]:
        value = self.extra.get("module")
        text = self.extra.get("module_dictText")
        if not isinstance(value, str) or not isinstance(text, str):
            return None
        return Module(value=value, text=text)

    def department(self) -> Optional[Department]:
        dept_id = self.extra.get("businessDeptId")
        if not isinstance(dept_id, str):
            return None
        name = ""
        for key in ("businessDeptId_dictText", "businessDeptName", "bussinessDeptName"):
            if isinstance(self.extra.get(key), str):
                name = self.extra[key]
                break
        return Department(id=dept_id, name=name, depth=-1)

    def labels(self) -> List[Label]:
        ids = self.extra.get("itemLable")
        names = self.extra.get("lableNames")
        if not isinstance(ids, str) or not isinstance(names, list):
            return []
        labels = []
        for i, label_id in enumerate(ids.split(",")):
            if i < len(names) and isinstance(names[i], str):
                labels.append(Label(id=label_id, name=names[i]))
        return labels

    def refresh(self, client) -> None:
        """Replace every field with a freshly fetched record for this id."""
        fresh = Activity.from_dict(client.fetch_one(DETAIL_ENDPOINT, {"id": self.id}))
        for f in dataclasses.fields(self):
            setattr(self, f.name, getattr(fresh, f.name))


@dataclass
class User:
    id: str
    name: str = ""
    gender: str = ""
    avatar: Optional[str] = None
    grade: str = ""
    college: Optional[str] = None
    classes: str = ""
    scientific_value: int = 0
    birthday: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            name=_str(data.get("realname")),
            gender=_str(data.get("sex_dictText")),
            avatar=_opt_str(data.get("avatar")),
            grade=_str(data.get("grade")),
            college=_opt_str(data.get("college")),
            classes=_str(data.get("classes")),
            scientific_value=_opt_int(data.get("scientificqiValue")) or 0,
            birthday=_opt_str(data.get("birthday")),
        )


@dataclass
class SignInfo:
    name: str = ""
    college: str = ""
    classes: str = ""
    phone: str = ""
    email: str = ""
    remarks: str = ""

    def to_dict(self) -> Dict[str, str]:
        return dataclasses.asdict(self)
