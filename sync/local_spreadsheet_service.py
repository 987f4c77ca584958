# sync/local_spreadsheet_service.py

import csv
from pathlib import Path


def spill_row_to_csv(row: list, header: list[str], output_path: str) -> Path:
    """
    Append one row to a local CSV, writing `header` first if the file is new.
    Columns match the sheet so rows can be pasted back by hand.
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    is_new = not path.exists() or path.stat().st_size == 0

    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if is_new:
            writer.writerow(header)
        writer.writerow(row)

    return path
