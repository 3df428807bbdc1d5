"""
Cordage hook registry: pre/post execution hooks, global and per command.

Contracts
- pre-hook:  hook(parser, command) -> Exception | None
- post-hook: hook(parser, command, error) -> Exception | None

Ordering (insertion order is kept inside every list)
- GLOBAL_FIRST:  pre = global, command;   post = command, global
- COMMAND_FIRST: pre = command, global;   post = global, command

Post-hooks always run in the reverse group order of the pre-hooks, so a global
hook that acquires something before the command hooks releases it after them.
"""
from collections import defaultdict
from enum import IntEnum

from .utils import *


class HookOrder(IntEnum):
    GLOBAL_FIRST = 0
    COMMAND_FIRST = 1

    def __str__(self):
        return self.name.lower().replace("_", "-")


def _checked(hook):
    if not callable(hook):
        raise TypeError("hook must be callable")
    return hook


class HookRegistry:
    """
    Hooks owned by one parser instance.
    """

    def __init__(self):
        self._global_pre = []
        self._global_post = []
        self._command_pre = defaultdict(list)
        self._command_post = defaultdict(list)

    def add_global_pre(self, hook, /):
        self._global_pre.append(_checked(hook))

    def add_global_post(self, hook, /):
        self._global_post.append(_checked(hook))

    def add_command_pre(self, path, hook, /):
        self._command_pre[join_path(path)].append(_checked(hook))

    def add_command_post(self, path, hook, /):
        self._command_post[join_path(path)].append(_checked(hook))

    def clear_global(self):
        self._global_pre.clear()
        self._global_post.clear()

    def clear_command(self, path, /):
        path = join_path(path)
        self._command_pre.pop(path, None)
        self._command_post.pop(path, None)

    def global_hooks(self):
        """
        (pre, post) copies of the global lists.
        """
        return list(self._global_pre), list(self._global_post)

    def command_hooks(self, path, /):
        """
        (pre, post) copies of the lists registered for exactly path.
        """
        path = join_path(path)
        return list(self._command_pre.get(path, ())), list(self._command_post.get(path, ()))

    def pre_chain(self, path, order=HookOrder.GLOBAL_FIRST, /):
        """
        Pre-hooks to run for path, in execution order.
        """
        command = self._command_pre.get(join_path(path), [])
        if HookOrder(order) is HookOrder.GLOBAL_FIRST:
            return [*self._global_pre, *command]
        return [*command, *self._global_pre]

    def post_chain(self, path, order=HookOrder.GLOBAL_FIRST, /):
        """
        Post-hooks to run for path, in execution order.
        """
        command = self._command_post.get(join_path(path), [])
        if HookOrder(order) is HookOrder.GLOBAL_FIRST:
            return [*command, *self._global_post]
        return [*self._global_post, *command]


__all__ = (
    "HookOrder",
    "HookRegistry",
)
