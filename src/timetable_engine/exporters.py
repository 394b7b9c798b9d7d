"""Export of generated timetables."""

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import pandas as pd

from .config.settings import GenerationConfig
from .models import GenerationReport, TimetableVersion
from .utils import day_name, period_end_time, period_start_time


def assignment_rows(version: TimetableVersion, config: GenerationConfig) -> list[dict[str, Any]]:
    """Assignments with weekday names and wall-clock times, in timetable order."""
    rows = []
    for a in sorted(version.assignments, key=lambda a: (a.slot, a.class_id)):
        rows.append(
            {
                "variable_id": a.variable_id,
                "class_id": a.class_id,
                "subject_id": a.subject_id,
                "teacher_id": a.teacher_id,
                "room_id": a.room_id,
                "day": day_name(a.slot.day_index, config),
                "period": a.slot.period,
                "start_time": period_start_time(a.slot.period, config),
                "end_time": period_end_time(a.slot.period, config),
                "pinned": a.pinned,
            }
        )
    return rows


def summary_rows(version: TimetableVersion, report: GenerationReport) -> list[dict[str, Any]]:
    rows = [
        {"metric": "version_id", "value": version.version_id},
        {"metric": "school_id", "value": version.school_id},
        {"metric": "term_id", "value": version.term_id},
        {"metric": "status", "value": report.status.value},
        {"metric": "score", "value": round(report.score, 2)},
        {"metric": "assignments", "value": len(version.assignments)},
        {"metric": "unresolved_variables", "value": len(report.unresolved_variables)},
        {"metric": "conflicts", "value": len(report.conflicts)},
        {"metric": "iteration_count", "value": report.iteration_count},
        {"metric": "backtrack_count", "value": report.backtrack_count},
        {"metric": "elapsed_ms", "value": round(report.elapsed_ms, 2)},
    ]
    for goal, value in report.score_breakdown.components.items():
        rows.append({"metric": f"score.{goal}", "value": round(value, 2)})
    return rows


class BaseExporter(ABC):
    """Base class for exporters."""

    @abstractmethod
    def export(
        self,
        version: TimetableVersion,
        report: GenerationReport,
        config: GenerationConfig,
        output_path: str | Path,
    ) -> None:
        """Export a generated version and its report.

        Args:
            version: Timetable version to export
            report: Report of the run that produced it
            config: Settings of that run (day names, period times)
            output_path: Path to output file or directory
        """
        pass


class JSONExporter(BaseExporter):
    """Export to JSON format."""

    def __init__(self, indent: int = 2, ensure_ascii: bool = False):
        """Initialize exporter.

        Args:
            indent: JSON indentation level
            ensure_ascii: If False, allows non-ASCII characters
        """
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def export(
        self,
        version: TimetableVersion,
        report: GenerationReport,
        config: GenerationConfig,
        output_path: str | Path,
    ) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = version.to_dict()
        data["timetable"] = assignment_rows(version, config)
        data["report"] = report.to_dict()

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=self.indent, ensure_ascii=self.ensure_ascii)


class CSVExporter(BaseExporter):
    """Export to CSV format (multiple files)."""

    def export(
        self,
        version: TimetableVersion,
        report: GenerationReport,
        config: GenerationConfig,
        output_path: str | Path,
    ) -> None:
        """Export to CSV files.

        Creates:
        - timetable.csv: All assignments
        - teacher_workload.csv: Periods per teacher
        - room_utilization.csv: Used slots per room
        - conflicts.csv: Detected conflicts (only when there are any)
        - summary.csv: Overall summary
        """
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        self._write_csv(output_dir / "timetable.csv", assignment_rows(version, config))
        self._write_csv(
            output_dir / "teacher_workload.csv",
            [self._flatten_workload(w.to_dict()) for w in report.teacher_workload],
        )
        self._write_csv(
            output_dir / "room_utilization.csv",
            [self._flatten_room(r.to_dict()) for r in report.room_utilization],
        )
        self._write_csv(
            output_dir / "conflicts.csv",
            [self._flatten_conflict(c.to_dict()) for c in report.conflicts],
        )
        self._write_csv(output_dir / "summary.csv", summary_rows(version, report))

    @staticmethod
    def _flatten_workload(row: dict[str, Any]) -> dict[str, Any]:
        by_day = row.pop("periods_by_day")
        row["periods_by_day"] = "; ".join(f"{day}:{count}" for day, count in by_day.items())
        return row

    @staticmethod
    def _flatten_room(row: dict[str, Any]) -> dict[str, Any]:
        row["equipment"] = "; ".join(row["equipment"])
        return row

    @staticmethod
    def _flatten_conflict(row: dict[str, Any]) -> dict[str, Any]:
        row["variable_ids"] = "; ".join(row["variable_ids"])
        return row

    def _write_csv(self, output_path: Path, rows: list[dict]) -> None:
        """Write rows to CSV file."""
        if not rows:
            return

        with open(output_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=rows[0].keys())
            writer.writeheader()
            writer.writerows(rows)


class ExcelExporter(BaseExporter):
    """Export to Excel format (single workbook with multiple sheets)."""

    def export(
        self,
        version: TimetableVersion,
        report: GenerationReport,
        config: GenerationConfig,
        output_path: str | Path,
    ) -> None:
        """Export to an Excel workbook.

        Creates workbook with sheets:
        - Timetable: All assignments
        - Grid: Class x slot overview
        - Teachers: Teacher workload
        - Rooms: Room utilization
        - Conflicts: Detected conflicts
        - Summary: Overall summary
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        rows = assignment_rows(version, config)
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            timetable = pd.DataFrame(rows)
            timetable.to_excel(writer, sheet_name="Timetable", index=False)
            self._export_grid_sheet(timetable, writer)

            teachers = pd.DataFrame(
                [
                    {
                        "Teacher": w.teacher_id,
                        "Name": w.teacher_name,
                        "Periods": w.total_periods,
                        "Max / Week": w.max_periods_per_week,
                    }
                    for w in report.teacher_workload
                ]
            )
            teachers.to_excel(writer, sheet_name="Teachers", index=False)

            rooms = pd.DataFrame(
                [CSVExporter._flatten_room(r.to_dict()) for r in report.room_utilization]
            )
            rooms.to_excel(writer, sheet_name="Rooms", index=False)

            conflicts = pd.DataFrame(
                [CSVExporter._flatten_conflict(c.to_dict()) for c in report.conflicts],
                columns=["type", "day_index", "period", "entity_id", "variable_ids", "description"],
            )
            conflicts.to_excel(writer, sheet_name="Conflicts", index=False)

            pd.DataFrame(summary_rows(version, report)).to_excel(
                writer, sheet_name="Summary", index=False
            )

    @staticmethod
    def _export_grid_sheet(timetable: pd.DataFrame, writer: pd.ExcelWriter) -> None:
        """Class rows, day/period columns, ``subject (teacher, room)`` cells."""
        if timetable.empty:
            pd.DataFrame().to_excel(writer, sheet_name="Grid", index=False)
            return
        cells = timetable.assign(
            slot=timetable["day"] + " P" + timetable["period"].astype(str),
            cell=timetable["subject_id"]
            + " ("
            + timetable["teacher_id"]
            + ", "
            + timetable["room_id"]
            + ")",
        )
        slot_order = list(dict.fromkeys(cells["slot"]))
        grid = cells.pivot_table(
            index="class_id", columns="slot", values="cell", aggfunc=" / ".join
        )
        grid = grid.reindex(columns=slot_order)
        grid.to_excel(writer, sheet_name="Grid")


def get_exporter(format_type: str) -> BaseExporter:
    """Get exporter by format type.

    Args:
        format_type: One of 'json', 'csv', 'excel'

    Returns:
        Appropriate exporter instance

    Raises:
        ValueError: If format type is not supported
    """
    exporters = {
        "json": JSONExporter,
        "csv": CSVExporter,
        "excel": ExcelExporter,
    }

    exporter_class = exporters.get(format_type.lower())
    if exporter_class is None:
        raise ValueError(
            f"Unsupported format: {format_type}. Supported: {', '.join(exporters.keys())}"
        )

    return exporter_class()
