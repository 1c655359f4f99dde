"""Activity filter used both for server queries and local matching."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from .models import Activity, Department, Label, Module, TimeInterval


@dataclass(frozen=True)
class ActivityFilter:
    name: str = ""
    fuzzy_name: bool = False
    time_window: Optional[TimeInterval] = None
    strict_time: bool = False
    module: Optional[Module] = None
    department: Optional[Department] = None
    labels: FrozenSet[Label] = field(default_factory=frozenset)
    # treat an unparseable hold time as failing the time window
    fail_closed_time: bool = False

    def with_name(self, name: str, fuzzy: bool = False) -> "ActivityFilter":
        return dataclasses.replace(self, name=name, fuzzy_name=fuzzy)

    def with_module(self, module: Module) -> "ActivityFilter":
        return dataclasses.replace(self, module=module)

    def with_department(self, department: Department) -> "ActivityFilter":
        return dataclasses.replace(self, department=department)

    def with_time_window(self, window: TimeInterval, strict: bool = False) -> "ActivityFilter":
        return dataclasses.replace(self, time_window=window, strict_time=strict)

    def add_label(self, label: Label) -> "ActivityFilter":
        return dataclasses.replace(self, labels=self.labels | {label})

    def to_query_parameters(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.name:
            params["itemName"] = self.name
        if self.module is not None:
            params["module"] = self.module.value
        if self.department is not None:
            params["businessDeptId"] = self.department.id
        if self.labels:
            params["itemLable"] = ",".join(sorted(label.id for label in self.labels))
        return params

    def matches(self, activity: Activity, only_strict_phase: bool = False) -> bool:
        """Return True if ``activity`` passes the filter.

        The loose phase checks name and classification, the strict phase
        checks the time window. ``only_strict_phase`` skips the loose one.
        """
        if not only_strict_phase and not self._matches_loose(activity):
            return False
        return self._matches_strict(activity)

    def _matches_loose(self, activity: Activity) -> bool:
        if self.name:
            if self.fuzzy_name:
                if self.name.lower() not in activity.name.lower():
                    return False
            elif activity.name != self.name:
                return False

        if self.module is not None:
            module = activity.module()
            if module is not None and module.value != self.module.value:
                return False

        if self.department is not None:
            department = activity.department()
            if department is not None and department.id != self.department.id:
                return False

        if self.labels and not self.labels.intersection(activity.labels()):
            return False
        return True

    def _matches_strict(self, activity: Activity) -> bool:
        if self.time_window is None:
            return True
        try:
            hold_time = activity.hold_time()
        except ValueError:
            return not self.fail_closed_time
        if self.strict_time:
            return self.time_window.contains(hold_time)
        return self.time_window.overlaps(hold_time)
