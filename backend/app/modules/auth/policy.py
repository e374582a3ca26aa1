"""
Access Control Gate
===================
Every mutation asks one question before it writes anything:
may this actor perform this action on this resource?

The answer comes from the POLICIES table below:
- admin and superadmin are always allowed
- otherwise the actor's role must be listed for (resource_type, action)
- when the policy names an owner_field, the actor must also own the
  resource: str(actor.id) == str(getattr(resource, owner_field))
- roles listed in owner_exempt skip the ownership test (staff reading
  any student record, for example)
- a (resource_type, action) pair missing from the table is denied

Called with resource=None the gate only answers the role question; this
is how endpoint dependencies guard a route before the row is loaded.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple

from app.core.exceptions import AuthorizationError
from app.core.logging_config import logger
from app.models.user import ADMIN_ROLES, UserRole


STUDENT = UserRole.STUDENT
FACULTY = UserRole.FACULTY
EVERYONE = frozenset({STUDENT, FACULTY})
STAFF = frozenset({FACULTY})
ADMIN_ONLY: FrozenSet[UserRole] = frozenset()


@dataclass(frozen=True)
class Policy:
    roles: FrozenSet[UserRole] = ADMIN_ONLY
    owner_field: Optional[str] = None
    owner_exempt: FrozenSet[UserRole] = frozenset()


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _owned(roles: FrozenSet[UserRole], owner_field: str) -> Policy:
    return Policy(roles=roles, owner_field=owner_field)


POLICIES: Dict[Tuple[str, str], Policy] = {
    # Users
    ("user", "list"): Policy(ADMIN_ONLY),
    ("user", "create"): Policy(ADMIN_ONLY),
    ("user", "read"): Policy(ADMIN_ONLY),
    ("user", "update"): Policy(ADMIN_ONLY),
    ("user", "delete"): Policy(ADMIN_ONLY),
    ("user", "update_photo"): _owned(EVERYONE, "id"),
    ("user_document", "create"): _owned(EVERYONE, "user_id"),
    ("user_document", "delete"): _owned(EVERYONE, "user_id"),
    ("user_document", "verify"): Policy(ADMIN_ONLY),

    # Catalogue
    ("department", "create"): Policy(ADMIN_ONLY),
    ("department", "update"): Policy(ADMIN_ONLY),
    ("department", "delete"): Policy(ADMIN_ONLY),
    ("program", "create"): Policy(ADMIN_ONLY),
    ("program", "update"): Policy(ADMIN_ONLY),
    ("program", "delete"): Policy(ADMIN_ONLY),

    # Students / faculty
    ("student", "list"): Policy(STAFF),
    ("student", "read"): Policy(EVERYONE, owner_field="user_id", owner_exempt=STAFF),
    ("student", "create"): Policy(ADMIN_ONLY),
    ("student", "update"): Policy(ADMIN_ONLY),
    ("student", "delete"): Policy(ADMIN_ONLY),
    ("student", "update_enrollment"): Policy(STAFF),
    ("faculty", "create"): Policy(ADMIN_ONLY),
    ("faculty", "update"): Policy(ADMIN_ONLY),
    ("faculty", "delete"): Policy(ADMIN_ONLY),

    # Courses
    ("course", "create"): Policy(STAFF),
    ("course", "update"): Policy(STAFF),
    ("course", "delete"): Policy(ADMIN_ONLY),
    ("course", "enroll"): Policy(STAFF),
    ("course", "unenroll"): Policy(STAFF),
    ("course", "update_syllabus"): Policy(STAFF),

    # Exams
    ("exam", "create"): Policy(STAFF),
    ("exam", "update"): _owned(STAFF, "created_by_id"),
    ("exam", "delete"): _owned(STAFF, "created_by_id"),
    ("exam_result", "create"): Policy(STAFF),
    ("exam_result", "update"): _owned(STAFF, "evaluated_by_id"),
    ("exam_result", "delete"): _owned(STAFF, "evaluated_by_id"),

    # Attendance
    ("attendance", "create"): Policy(STAFF),
    ("attendance", "bulk_create"): Policy(STAFF),
    ("attendance", "update"): _owned(STAFF, "marked_by_id"),
    ("attendance", "delete"): _owned(STAFF, "marked_by_id"),
    ("attendance", "stats"): Policy(STAFF),

    # Timetables
    ("timetable", "create"): Policy(STAFF),
    ("timetable", "update"): _owned(STAFF, "created_by_id"),
    ("timetable", "delete"): _owned(STAFF, "created_by_id"),
    ("timetable", "manage_slots"): _owned(STAFF, "created_by_id"),
    ("timetable", "check_conflicts"): Policy(STAFF),

    # Admissions
    ("admission", "list"): Policy(STAFF),
    ("admission", "create"): Policy(EVERYONE),
    ("admission", "read"): Policy(EVERYONE, owner_field="user_id", owner_exempt=STAFF),
    ("admission", "update"): Policy(ADMIN_ONLY),
    ("admission", "delete"): Policy(ADMIN_ONLY),
    ("admission", "upload_document"): _owned(EVERYONE, "user_id"),
    ("admission", "delete_document"): _owned(EVERYONE, "user_id"),
    ("admission", "verify_document"): Policy(ADMIN_ONLY),

    # Announcements
    ("announcement", "create"): Policy(STAFF),
    ("announcement", "update"): _owned(STAFF, "created_by_id"),
    ("announcement", "delete"): _owned(STAFF, "created_by_id"),
    ("announcement", "acknowledge"): Policy(EVERYONE),

    # Forums
    ("forum", "create"): Policy(EVERYONE),
    ("forum", "update"): _owned(EVERYONE, "created_by_id"),
    ("forum", "delete"): _owned(EVERYONE, "created_by_id"),
    ("forum_topic", "create"): Policy(EVERYONE),
    ("forum_topic", "update"): _owned(EVERYONE, "author_id"),
    ("forum_topic", "delete"): _owned(EVERYONE, "author_id"),
    ("forum_topic", "like"): Policy(EVERYONE),
    ("forum_reply", "create"): Policy(EVERYONE),
    ("forum_reply", "delete"): _owned(EVERYONE, "author_id"),

    # Dashboards / analytics
    ("dashboard", "admin"): Policy(ADMIN_ONLY),
    ("dashboard", "faculty"): Policy(STAFF),
    ("dashboard", "student"): Policy(EVERYONE),
    ("analytics", "read"): Policy(EVERYONE),
    ("analytics", "enrollment"): Policy(ADMIN_ONLY),
    ("analytics", "export"): Policy(ADMIN_ONLY),
}


def _role(actor: Any) -> Optional[UserRole]:
    role = getattr(actor, "role", None)
    if role is None:
        return None
    try:
        return UserRole(getattr(role, "value", role))
    except ValueError:
        return None


def authorize(actor: Any, action: str, resource_type: str, resource: Any = None) -> Decision:
    """Decide whether actor may perform action on resource_type (and resource)"""
    if actor is None:
        return Decision(False, "No authenticated user")

    role = _role(actor)
    if role in ADMIN_ROLES:
        return Decision(True, "admin")

    policy = POLICIES.get((resource_type, action))
    if policy is None:
        return Decision(False, f"No policy for {resource_type}:{action}")

    if role not in policy.roles:
        return Decision(False, f"Role {getattr(role, 'value', role)} may not {action} {resource_type}")

    if policy.owner_field and resource is not None and role not in policy.owner_exempt:
        owner = getattr(resource, policy.owner_field, None)
        if owner is None or str(owner) != str(actor.id):
            return Decision(False, f"User does not own this {resource_type}")

    return Decision(True, "role" if not policy.owner_field else "owner")


def enforce(actor: Any, action: str, resource_type: str, resource: Any = None) -> Decision:
    """authorize() or raise AuthorizationError"""
    decision = authorize(actor, action, resource_type, resource)
    if not decision.allowed:
        logger.log_auth_event(
            "access_denied",
            actor_id=str(getattr(actor, "id", "")) or None,
            success=False,
            resource_type=resource_type,
            action=action,
            reason=decision.reason,
        )
        actor_id = getattr(actor, "id", None)
        raise AuthorizationError(
            f"User {actor_id} is not authorized to {action.replace('_', ' ')} this {resource_type.replace('_', ' ')}",
            action=f"{resource_type}:{action}",
        )
    return decision
