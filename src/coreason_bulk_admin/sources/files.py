# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import csv
from pathlib import Path
from typing import List, Union

from coreason_bulk_admin.exceptions import SourceFormatError
from coreason_bulk_admin.utils.logger import logger


class CsvIdentitySource:
    """
    Projects one named column of a delimited file.
    Column matching ignores case and surrounding whitespace in the header.
    """

    requires_session = False

    def __init__(
        self,
        path: Union[str, Path],
        column: str,
        delimiter: str = ",",
        encoding: str = "utf-8-sig",
    ) -> None:
        self.path = Path(path)
        self.column = column
        self.delimiter = delimiter
        self.encoding = encoding

    def load(self) -> List[str]:
        try:
            with self.path.open("r", encoding=self.encoding, newline="") as handle:
                reader = csv.DictReader(handle, delimiter=self.delimiter)
                header = reader.fieldnames or []
                key = self._match_column(header)
                identities = [(row.get(key) or "") for row in reader]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SourceFormatError(f"Cannot read {self.path}: {e}") from e

        logger.info(f"Loaded {len(identities)} row(s) from {self.path} (column '{key}')")
        return identities

    def _match_column(self, header: List[str]) -> str:
        wanted = self.column.strip().lower()
        for name in header:
            if name is not None and name.strip().lower() == wanted:
                return name
        raise SourceFormatError(
            f"Column '{self.column}' not found in {self.path}. Available columns: {', '.join(header) or 'none'}"
        )


class TextFileIdentitySource:
    """One identity per line; '#' starts a comment line."""

    requires_session = False

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8-sig") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def load(self) -> List[str]:
        try:
            lines = self.path.read_text(encoding=self.encoding).splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFormatError(f"Cannot read {self.path}: {e}") from e
        identities = [line for line in lines if not line.lstrip().startswith("#")]
        logger.info(f"Loaded {len(identities)} line(s) from {self.path}")
        return identities
