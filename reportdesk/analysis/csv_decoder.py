import csv
import io
from collections.abc import Iterator

from reportdesk.analysis.exceptions import DecodeError

Row = dict[str, str]

_BOM = "\ufeff"


class CsvDecoder:
    """Turns delimited text into row mappings keyed by header name.

    Rows are produced lazily; calling decode again restarts from the top.
    Values are left as raw strings.
    """

    def __init__(self, delimiter: str = ",") -> None:
        self._delimiter = delimiter

    def decode(self, text: str, has_header: bool = True) -> Iterator[Row]:
        """Yield one mapping per non-empty line.

        With has_header, the first non-empty line names the fields. Short
        lines simply lack the trailing keys and surplus values are dropped.
        Without headers, keys are the column positions ("0", "1", ...).

        Raises:
            DecodeError: on a NUL byte or an unterminated quoted field.
        """
        if text.startswith(_BOM):
            text = text[len(_BOM):]
        reader = csv.reader(
            self._checked_lines(text), delimiter=self._delimiter, strict=True
        )
        header: list[str] | None = None
        try:
            for values in reader:
                if not any(value.strip() for value in values):
                    continue
                if has_header and header is None:
                    header = _unique_names(values)
                    continue
                if header is None:
                    yield {str(index): value for index, value in enumerate(values)}
                else:
                    yield dict(zip(header, values))
        except csv.Error as exc:
            raise DecodeError(f"CSV parsing failed at line {reader.line_num}: {exc}") from exc

    @staticmethod
    def _checked_lines(text: str) -> Iterator[str]:
        for number, line in enumerate(io.StringIO(text, newline=""), start=1):
            if "\x00" in line:
                raise DecodeError(f"CSV parsing failed at line {number}: NUL byte in input")
            yield line


def _unique_names(names: list[str]) -> list[str]:
    """Suffix repeated header names (_1, _2, ...) so no column is shadowed."""
    seen: dict[str, int] = {}
    result: list[str] = []
    for name in names:
        if name in seen:
            seen[name] += 1
            result.append(f"{name}_{seen[name]}")
        else:
            seen[name] = 0
            result.append(name)
    return result
