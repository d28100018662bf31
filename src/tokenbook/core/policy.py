"""Role-gated capabilities for the rendered view.

This is a convenience for the operator, not a security boundary: the
gateway enforces the same rules on its side.
"""

from pydantic import BaseModel

from tokenbook.core.session import Role
from tokenbook.core.token import Tag

ADMIN_FORCED_TAG = Tag.BANTI

DELETE_DENIED = "Access denied. Only Super Admin can delete tokens."
TAG_DENIED = "Access denied. Only Super Admin can modify tags."


class Capabilities(BaseModel):
    can_delete: bool
    can_bulk_delete: bool
    can_delete_by_search: bool
    can_edit_tag: bool
    can_bulk_tag: bool
    # Date correction is open to every role
    can_bulk_date: bool = True
    forced_tag: Tag | None = None

    @property
    def tag_locked(self) -> bool:
        return self.forced_tag is not None

    def resolve_tag(self, requested: Tag | None) -> Tag | None:
        """Tag actually sent on create, import and edit paths."""
        if self.forced_tag is not None:
            return self.forced_tag
        return requested


def capabilities_for(role: Role | None) -> Capabilities:
    if role == Role.SUPER_ADMIN:
        return Capabilities(
            can_delete=True,
            can_bulk_delete=True,
            can_delete_by_search=True,
            can_edit_tag=True,
            can_bulk_tag=True,
        )

    return Capabilities(
        can_delete=False,
        can_bulk_delete=False,
        can_delete_by_search=False,
        can_edit_tag=False,
        can_bulk_tag=False,
        forced_tag=ADMIN_FORCED_TAG,
    )
