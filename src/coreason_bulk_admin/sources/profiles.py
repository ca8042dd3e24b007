# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import List, Optional

from coreason_bulk_admin.exceptions import SourceLookupError
from coreason_bulk_admin.utils.logger import logger
from coreason_bulk_admin.utils.shell import ShellExecutor

LIST_SCRIPT = (
    "Get-CimInstance -ClassName Win32_UserProfile -Filter 'Special=False' | "
    "Sort-Object LocalPath | Select-Object -ExpandProperty SID"
)


class LocalProfileSource:
    """SIDs of every non-special user profile on this machine."""

    requires_session = False

    def __init__(self, shell: Optional[ShellExecutor] = None) -> None:
        self.shell = shell or ShellExecutor()

    def load(self) -> List[str]:
        result = self.shell.run_powershell(LIST_SCRIPT)
        if result.exit_code != 0:
            raise SourceLookupError(f"Cannot enumerate user profiles: {result.output()}")
        sids = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        logger.info(f"Found {len(sids)} local user profile(s)")
        return sids
