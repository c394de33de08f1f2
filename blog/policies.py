"""
Authorization policies.

Each policy is a plain function of ``(caller, resource)`` returning a
permit/deny boolean, so the same rule drives both the ``is_editable``
flag on the public detail page and the guards on edit / update.
"""
from blog.models import EDITOR_ROLES, User


def can_edit_article(caller: User | None, author_id: int) -> bool:
    """Owners and admins may edit anything; authors may edit their own articles."""
    if caller is None:
        return False
    return caller.role in EDITOR_ROLES or caller.id == author_id


def can_see_all_articles(caller: User) -> bool:
    return caller.role in EDITOR_ROLES
