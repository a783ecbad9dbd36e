"""
Catalog error taxonomy.

Every failure a caller is expected to recover from has its own type so the
HTTP layer (or any other caller) can render a specific message instead of a
generic one. Each error exposes a machine-readable ``code`` and a
``details()`` dict.

A course pointing at a college that no longer exists is *not* an error:
the join falls back to "Unknown College" and carries on.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for all catalog errors."""

    code = "CATALOG_ERROR"

    def details(self) -> dict[str, Any]:
        return {}


class ReferentialIntegrityError(CatalogError):
    """A college cannot be removed while courses still reference it."""

    code = "REFERENTIAL_INTEGRITY"

    def __init__(self, college_id: str, blocking_count: int):
        self.college_id = college_id
        self.blocking_count = blocking_count
        super().__init__(
            f"College {college_id!r} has {blocking_count} existing course(s). "
            "Delete the associated courses first."
        )

    def details(self) -> dict[str, Any]:
        return {"college_id": self.college_id, "blocking_count": self.blocking_count}


class DuplicateUserError(CatalogError):
    code = "DUPLICATE_USER"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User {email!r} already exists.")

    def details(self) -> dict[str, Any]:
        return {"email": self.email}


class SelfDeletionError(CatalogError):
    code = "SELF_DELETION"

    def __init__(self, email: str):
        self.email = email
        super().__init__("You cannot delete your own account.")

    def details(self) -> dict[str, Any]:
        return {"email": self.email}


class DuplicateIdError(CatalogError):
    """A caller-supplied id collides with an entity already in the collection."""

    code = "DUPLICATE_ID"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"A {kind} with id {entity_id!r} already exists.")

    def details(self) -> dict[str, Any]:
        return {"kind": self.kind, "id": self.entity_id}


class UnknownUserError(CatalogError):
    code = "UNKNOWN_USER"

    def __init__(self, email: str):
        self.email = email
        super().__init__("You are not an authorized user.")

    def details(self) -> dict[str, Any]:
        return {"email": self.email}


class InvalidRoleError(CatalogError):
    """The user's role is not one of Admin / Editor / Viewer."""

    code = "INVALID_ROLE"

    def __init__(self, email: str, role: str):
        self.email = email
        self.role = role
        super().__init__(
            f"Role {role!r} is invalid. Please contact the administrator."
        )

    def details(self) -> dict[str, Any]:
        return {"email": self.email, "role": self.role}


class PersistenceFailure(CatalogError):
    """
    Writing a collection back to the durable store failed.

    Raised by persistence sinks. The session service downgrades it to a
    warning: the in-memory state stays ahead of the store until the next
    successful write.
    """

    code = "PERSISTENCE_FAILURE"

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        self.reason = reason
        super().__init__(
            f"Failed to sync {collection} to the store ({reason}). Saved in memory only."
        )

    def details(self) -> dict[str, Any]:
        return {"collection": self.collection, "reason": self.reason}


class BulkImportError(CatalogError):
    """One or more rows of an imported sheet could not be coerced."""

    code = "BULK_IMPORT"

    def __init__(self, sheet: str, problems: list[str]):
        self.sheet = sheet
        self.problems = problems
        super().__init__(f"{sheet}: {len(problems)} invalid row(s): " + "; ".join(problems[:5]))

    def details(self) -> dict[str, Any]:
        return {"sheet": self.sheet, "problems": self.problems}


class SourceUnavailableError(CatalogError):
    """The data source could not be reached for a manual refresh."""

    code = "SOURCE_UNAVAILABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not refresh from the store ({reason}). Showing the last loaded data.")

    def details(self) -> dict[str, Any]:
        return {"reason": self.reason}
