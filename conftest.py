"""
Shared fixtures: an in-memory stand-in for the AIX user and group commands
"""

import pytest

from exceptions import ExecutionFailure


LIST_COMMANDS = {"/usr/sbin/lsuser": "user", "/usr/sbin/lsgroup": "group"}
ADD_COMMANDS = {"/usr/bin/mkuser": "user", "/usr/bin/mkgroup": "group"}
MODIFY_COMMANDS = {"/usr/bin/chuser": "user", "/usr/bin/chgroup": "group"}
DELETE_COMMANDS = {"/usr/sbin/rmuser": "user", "/usr/sbin/rmgroup": "group"}
CHPASSWD = "/bin/chpasswd"


def _escape(value):
    return str(value).replace(":", "#!:")


def stanza(name, attributes):
    """Format one object the way lsuser -c / lsgroup -c do."""
    header = ":".join(["#name"] + list(attributes))
    values = ":".join([_escape(name)] + [_escape(value) for value in attributes.values()])
    return f"{header}\n{values}\n"


class FakeAix:
    """
    Executes ls*/mk*/ch*/rm*/chpasswd against in-memory users and groups.

    Every call is recorded in `calls`. Setting `failures[path]` makes the
    next call to that command raise the given exception.
    """

    def __init__(self):
        self.objects = {"user": {}, "group": {}}
        self.calls = []
        self.options = []
        self.failures = {}
        self.chpasswd_input = []
        self.chpasswd_output = ""
        self._next_id = {"user": 200, "group": 200}

    def add_group(self, name, gid, **attributes):
        self.objects["group"][name] = {"id": str(gid), "admin": "false", **attributes}

    def add_user(self, name, uid, pgrp="staff", **attributes):
        self.objects["user"][name] = {
            "id": str(uid), "pgrp": pgrp, "groups": pgrp,
            "home": f"/home/{name}", "shell": "/usr/bin/ksh", **attributes
        }

    def mutations(self):
        """Recorded calls that were not ls* commands."""
        return [call for call in self.calls if call[0] not in LIST_COMMANDS]

    def _not_found(self, kind, name, command):
        message = f'3004-687 {kind.capitalize()} "{name}" does not exist.\n'
        return ExecutionFailure(message, command=command, exitstatus=2, output=message)

    def __call__(self, command, failonfail=True, combine=True, stdinfile=None):
        command = [str(arg) for arg in command]
        self.calls.append(command)
        self.options.append({"failonfail": failonfail, "combine": combine, "stdinfile": stdinfile})

        path, args = command[0], command[1:]
        if path in self.failures:
            raise self.failures.pop(path)

        if "-R" in args:
            index = args.index("-R")
            del args[index:index + 2]

        if path in LIST_COMMANDS:
            return self._list(LIST_COMMANDS[path], args, command)
        if path in ADD_COMMANDS:
            return self._add(ADD_COMMANDS[path], args, command)
        if path in MODIFY_COMMANDS:
            return self._modify(MODIFY_COMMANDS[path], args, command)
        if path in DELETE_COMMANDS:
            return self._delete(DELETE_COMMANDS[path], args, command)
        if path == CHPASSWD:
            with open(stdinfile, "r", encoding="ascii") as f:
                self.chpasswd_input.append(f.read())
            return self.chpasswd_output

        raise ExecutionFailure(f"{path}: not found", command=command, exitstatus=127)

    def _list(self, kind, args, command):
        objects = self.objects[kind]
        if args == ["-c", "-a", "id", "ALL"]:
            return "".join(stanza(name, {"id": attrs["id"]}) for name, attrs in objects.items())

        name = args[-1]
        if name not in objects:
            raise self._not_found(kind, name, command)
        return stanza(name, objects[name])

    def _add(self, kind, args, command):
        name = args[-1]
        if name in self.objects[kind]:
            message = f'3004-689 {kind.capitalize()} "{name}" exists.\n'
            raise ExecutionFailure(message, command=command, exitstatus=1, output=message)

        attributes = dict(arg.split("=", 1) for arg in args[:-1])
        if "id" not in attributes:
            self._next_id[kind] += 1
            attributes["id"] = str(self._next_id[kind])
        self.objects[kind][name] = attributes
        return ""

    def _modify(self, kind, args, command):
        name = args[-1]
        if name not in self.objects[kind]:
            raise self._not_found(kind, name, command)
        self.objects[kind][name].update(arg.split("=", 1) for arg in args[:-1])
        return ""

    def _delete(self, kind, args, command):
        name = args[-1]
        if name not in self.objects[kind]:
            raise self._not_found(kind, name, command)
        del self.objects[kind][name]
        return ""


@pytest.fixture
def aix():
    """A fake AIX host with the staff and system groups."""
    fake = FakeAix()
    fake.add_group("system", 0)
    fake.add_group("staff", 1)
    return fake
