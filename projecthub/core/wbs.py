"""WBS (Work Breakdown Structure) numbers: ``car.project.workPackage``."""

from dataclasses import dataclass

from projecthub.core.exceptions import ValidationError


@dataclass(frozen=True)
class WbsNumber:
    car_number: int
    project_number: int
    work_package_number: int

    @classmethod
    def parse(cls, value: str) -> "WbsNumber":
        """Parse ``"1.2.0"`` into a WbsNumber, raising ValidationError if malformed."""
        parts = str(value or "").strip().split(".")
        if len(parts) != 3:
            raise ValidationError(f"WBS Invalid: {value!r} must have 3 numbers separated by dots")
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise ValidationError(f"WBS Invalid: {value!r} contains a non-integer part") from None
        if any(n < 0 for n in numbers):
            raise ValidationError(f"WBS Invalid: {value!r} contains a negative number")
        return cls(*numbers)

    @classmethod
    def from_dict(cls, data: dict) -> "WbsNumber":
        try:
            return cls(
                int(data["car_number"]),
                int(data["project_number"]),
                int(data["work_package_number"]),
            )
        except (KeyError, TypeError, ValueError):
            raise ValidationError("WBS Invalid: expected car_number, project_number, work_package_number") from None

    @property
    def is_project(self) -> bool:
        return self.work_package_number == 0

    def to_dict(self) -> dict:
        return {
            "car_number": self.car_number,
            "project_number": self.project_number,
            "work_package_number": self.work_package_number,
        }

    def __str__(self) -> str:
        return f"{self.car_number}.{self.project_number}.{self.work_package_number}"


def require_project_wbs(wbs: WbsNumber) -> None:
    if not wbs.is_project:
        raise ValidationError(f"{wbs} is not a valid project WBS #!")


def require_work_package_wbs(wbs: WbsNumber) -> None:
    if wbs.is_project:
        raise ValidationError(f"{wbs} is not a valid work package WBS #!")
