# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import List

from coreason_bulk_admin.exceptions import SessionError, SourceLookupError
from coreason_bulk_admin.sessions.graph import GraphRequestError, GraphSessionManager
from coreason_bulk_admin.utils.logger import logger


class GraphGroupSource:
    """
    Resolves a directory group by display name and projects each member's userPrincipalName.
    Members without a principal name (devices, contacts) are ignored.
    """

    requires_session = True

    def __init__(self, manager: GraphSessionManager, group_name: str) -> None:
        self.manager = manager
        self.group_name = group_name

    def load(self) -> List[str]:
        try:
            session = self.manager.current()
            escaped = self.group_name.replace("'", "''")
            groups = session.get(
                "groups",
                params={"$filter": f"displayName eq '{escaped}'", "$select": "id,displayName"},
            ).get("value", [])
            if not groups:
                raise SourceLookupError(f"Group '{self.group_name}' not found.")
            if len(groups) > 1:
                raise SourceLookupError(f"Group name '{self.group_name}' is ambiguous ({len(groups)} matches).")

            group_id = groups[0]["id"]
            members = session.get_paged(
                f"groups/{group_id}/transitiveMembers",
                params={"$select": "id,userPrincipalName"},
            )
            identities = [m["userPrincipalName"] for m in members if m.get("userPrincipalName")]
        except (GraphRequestError, SessionError) as e:
            raise SourceLookupError(f"Cannot resolve group '{self.group_name}': {e}") from e

        logger.info(f"Group '{self.group_name}' resolved to {len(identities)} member(s)")
        return identities
