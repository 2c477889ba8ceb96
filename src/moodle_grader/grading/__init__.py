"""Grade sheets: the YAML file that links downloading and grading."""

from .sheet import GradeEntry, GradeSheet, GradeSheetError, load_grade_sheet, write_grade_sheet

__all__ = ["GradeEntry", "GradeSheet", "GradeSheetError", "load_grade_sheet", "write_grade_sheet"]
