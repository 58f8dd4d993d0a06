"""
Spreadsheet question bank importer using openpyxl and pandas.

Reads the first worksheet of .xlsx workbooks with openpyxl and .csv files
with pandas. The first row holds the column names.
"""

from pathlib import Path
from typing import Any, ClassVar

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from exam_grader.importers.base import QuestionImporter, QuestionImportError
from exam_grader.models import Question


class SpreadsheetQuestionImporter(QuestionImporter):
    """
    Loads questions from tabular files.

    Column headers are matched case-insensitively; unknown columns such as
    difficulty or tags are ignored.
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".xlsx", ".csv")

    def load(self, file_path: Path, exam_id: str | None = None) -> list[Question]:
        self._validate_file(file_path)

        try:
            if file_path.suffix.lower() == ".xlsx":
                records = self._read_xlsx(file_path)
            else:
                records = self._read_csv(file_path)
        except InvalidFileException as e:
            raise QuestionImportError(
                "File is not a valid Excel document or is corrupted", file_path, cause=e
            ) from e
        except QuestionImportError:
            raise
        except Exception as e:
            raise QuestionImportError(f"Unexpected error: {e}", file_path, cause=e) from e

        # Row 1 is the header
        return self._build_questions(records, file_path, exam_id, first_row=2)

    def _read_xlsx(self, file_path: Path) -> list[dict[str, Any]]:
        workbook = load_workbook(file_path, read_only=True, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            rows = sheet.iter_rows(values_only=True)
            header = next(rows, None)
            if header is None:
                raise QuestionImportError("Spreadsheet contains no data", file_path)
            columns = [_normalize_header(cell) for cell in header]

            records: list[dict[str, Any]] = []
            for row in rows:
                if all(cell is None or str(cell).strip() == "" for cell in row):
                    continue  # Skip empty rows
                records.append(dict(zip(columns, row)))
            return records
        finally:
            workbook.close()

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        frame = pd.read_csv(
            file_path,
            dtype=str,
            skip_blank_lines=True,
        )
        frame.columns = [_normalize_header(c) for c in frame.columns]
        # Every cell is read as text; the Question model converts numbers
        frame = frame.astype(object).where(pd.notna(frame), None)
        return frame.to_dict(orient="records")


def _normalize_header(cell: Any) -> str:
    return str(cell or "").strip().lower().replace(" ", "_")
