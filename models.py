"""
DiffSync models for AIX users and groups
"""

from typing import Dict, List, Optional, Union

from diffsync import DiffSyncModel


def _declared(attrs):
    """Drop properties that were not declared."""
    return {key: value for key, value in attrs.items() if value is not None}


class AixObject(DiffSyncModel):
    """
    DiffSync model shared by AIX users and groups.
    Changes are not applied right away: they are queued on the target adapter
    (AIX), which applies them through the providers once the diff is done.
    """
    _identifiers = ("name",)

    name: str
    attributes: Dict[str, str] = {}

    @classmethod
    def create(cls, adapter, ids, attrs):
        """Create this object on the target adapter (AIX)."""
        obj = cls(**ids, **attrs)
        obj.adapter = adapter

        if hasattr(adapter, 'pending_operations'):
            adapter.pending_operations.append(('create', cls._modelname, obj.name, _declared(attrs)))

        # Note: We don't add to the adapter's store here - diffsync handles that
        return obj

    def update(self, attrs):
        """Change the given attributes of this object on the target adapter (AIX)."""
        if hasattr(self.adapter, 'pending_operations'):
            self.adapter.pending_operations.append(('update', self._modelname, self.name, _declared(attrs)))

        return super().update(attrs)

    def delete(self) -> Optional["AixObject"]:
        """Delete this object from the target adapter (AIX)."""
        if hasattr(self.adapter, 'pending_operations'):
            self.adapter.pending_operations.append(('delete', self._modelname, self.name, {}))

        # Note: We don't remove from the adapter's store here - diffsync handles that
        return self


class AixGroup(AixObject):
    """An AIX group, identified by its name."""
    _modelname = "group"
    _attributes = ("gid", "members", "attributes")

    gid: Optional[int] = None
    members: Optional[List[str]] = None


class AixUser(AixObject):
    """An AIX user, identified by its name."""
    _modelname = "user"
    _attributes = (
        "uid", "gid", "groups", "home", "shell", "comment", "expiry",
        "password_max_age", "password_min_age", "password_warn_days",
        "password", "attributes",
    )

    uid: Optional[int] = None
    gid: Optional[Union[int, str]] = None
    groups: Optional[List[str]] = None
    home: Optional[str] = None
    shell: Optional[str] = None
    comment: Optional[str] = None
    expiry: Optional[str] = None
    password_max_age: Optional[int] = None
    password_min_age: Optional[int] = None
    password_warn_days: Optional[int] = None
    password: Optional[str] = None
