"""
Cordage command tree: named, hierarchical subcommands.

Overview
- Command: a named node with an optional callback, a description, child
  commands and a passthrough switch (unknown flags are tolerated below it).
- CommandTree: the registry of every command, addressed by its path (the
  space-joined names from the root, "server start").

Ownership
- The tree owns its nodes. Registering a command copies the whole subtree, so
  later changes to the caller's object never leak into the registry.
- Registered nodes refuse add(); the tree is the only way to grow them.
- Registration is all-or-nothing: every check runs before the first node is
  inserted, so a failed registration leaves the tree untouched.

Registration faults
- EmptyCommandPathError: empty path (the root cannot be registered).
- MissingParentCommandError: the parent path is not registered.
- DuplicateCommandError: any path of the subtree is already registered.
- RecursionDepthExceededError: the subtree would be nested deeper than max_depth.
"""
import logging
import re

from rich.text import Text

from .faults import *
from .utils import *

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


class Command(metaclass=IntrospectableType):
    """
    Command node.

    Properties
    - name, callback, descr, passthrough: read-only.
    - children: a fresh list of the child nodes.
    - path: canonical path once registered, Unset before.
    - terminal: True when the node has no children.
    """

    __introspectable__ = (
        "name",
        "callback",
        "descr",
        "children",
        "passthrough",
        "path",
    )

    __displayable__ = (
        "name",
        "path",
        "descr",
        "passthrough",
    )

    def __init__(self, name, callback=None, descr=Unset, children=(), passthrough=False):
        """
        Parameters
        - name: str
          One path segment (no whitespace, not starting with '-').
        - callback: Callable[[Parser, Command], Exception | None] | None
          Called when the command is executed; an Exception raised or returned
          is the command's error.
        - descr: Unset | str
          Short description.
        - children: Iterable[Command]
          Subcommands; each is copied.
        - passthrough: bool
          Tolerate unknown flags for this command and its descendants.
        """
        if not isinstance(name, str):
            raise TypeError(f"{Command.__typename__} 'name' must be a string")
        elif not (name := name.strip()) or re.search(r"\s", name) or name.startswith("-"):
            raise ValueError(f"{Command.__typename__} 'name' must be a single word not starting with '-'")

        if callback is not None and not callable(callback):
            raise TypeError(f"{Command.__typename__} 'callback' must be callable")

        if not isinstance(descr, str | Text | Unset):
            raise TypeError(f"{Command.__typename__} 'descr' must be a string")

        self._name = name
        self._callback = callback
        self._descr = coalesce(descr)
        self._passthrough = bool(passthrough)
        self._path = Unset
        self._children = []
        for child in children:
            self.add(child)

    @property
    def terminal(self):
        return not self._children

    def add(self, child, /):
        """
        Append a copy of child to the subcommands and return the copy.

        Only detached commands accept children; a node owned by a CommandTree
        grows through CommandTree.register.
        """
        if not isinstance(child, Command):
            raise TypeError(f"{Command.__typename__} children must be commands")
        if self._path is not Unset:
            raise ValueError(
                f"{Command.__typename__} {self._path!r} is registered; register subcommands through the tree"
            )
        if any(sibling._name == child._name for sibling in self._children):
            raise ValueError(f"{Command.__typename__} {self._name!r} already has a child named {child._name!r}")
        self._children.append(clone := child.__deepcopy__({}))
        return clone

    def child(self, name, /):
        """
        Return the direct child named name, or None.
        """
        for child in self._children:
            if child._name == name:
                return child
        return None

    def walk(self, prefix="", /):
        """
        Yield (path, node) for this node and its descendants, depth first.

        The walk is iterative; a node's path is prefix joined with its name.
        """
        stack = [(join_path(prefix, self._name), self)]
        while stack:
            path, node = stack.pop()
            yield path, node
            stack.extend((join_path(path, child._name), child) for child in reversed(node._children))

    def height(self):
        """
        Number of levels in the subtree rooted here (1 for a leaf).
        """
        height = 0
        for path, _ in self.walk():
            height = max(height, len(split_path(path)))
        return height

    def __copy__(self):
        return self.__deepcopy__({})

    def __deepcopy__(self, memo, /):
        # structure is copied, callbacks are shared
        clone = object.__new__(type(self))
        clone._name = self._name
        clone._callback = self._callback
        clone._descr = self._descr
        clone._passthrough = self._passthrough
        clone._path = Unset
        clone._children = [child.__deepcopy__(memo) for child in self._children]
        return clone


class CommandTree:
    """
    Registry of commands addressed by path.

    The root (path "") is implicit: it has no callback and its children are the
    top-level commands.
    """

    def __init__(self, *, max_depth=DEFAULT_MAX_DEPTH):
        if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 1:
            raise ValueError("command tree 'max_depth' must be a positive integer")
        self._max_depth = max_depth
        self._nodes = {}
        self._roots = []

    @property
    def max_depth(self):
        return self._max_depth

    def register(self, path, command, /):
        """
        Register command (and its whole subtree) at path.

        The last segment of path must be the command's name; the parent path
        must already be registered unless path is top-level.

        Returns the registered copy.
        """
        if not isinstance(command, Command):
            raise TypeError("register() argument must be a command")

        segments = split_path(path)
        if not segments:
            raise EmptyCommandPathError(
                "cannot register command %r at an empty path" % command.name,
                title="empty command path",
                hint="give the command a name, e.g. Command(%r)" % command.name,
                docs=getdoc(FaultCode.EMPTY_COMMAND_PATH),
            )
        if segments[-1] != command.name:
            raise ValueError("register() path %r does not end with the command name %r" % (path, command.name))

        path = " ".join(segments)
        parent = " ".join(segments[:-1])
        if parent and parent not in self._nodes:
            raise MissingParentCommandError(
                "cannot register %r: parent command %r is not registered" % (path, parent),
                title="missing parent command",
                path=path,
                parent=parent,
                hint="register %r first" % parent,
                docs=getdoc(FaultCode.MISSING_PARENT_COMMAND),
            )

        if (depth := len(segments) - 1 + command.height()) > self._max_depth:
            raise RecursionDepthExceededError(
                "command %r is nested %d levels deep, the limit is %d" % (path, depth, self._max_depth),
                title="recursion depth exceeded",
                path=path,
                depth=depth,
                limit=self._max_depth,
                hint="flatten the command hierarchy or raise max_depth",
                docs=getdoc(FaultCode.RECURSION_DEPTH_EXCEEDED),
            )

        clone = command.__deepcopy__({})
        pending = list(clone.walk(parent))
        for candidate, _ in pending:
            if candidate in self._nodes:
                raise DuplicateCommandError(
                    "command %r is already registered" % candidate,
                    title="duplicate command",
                    path=candidate,
                    hint="pick another name or register the subcommand under a different parent",
                    docs=getdoc(FaultCode.DUPLICATE_COMMAND),
                )

        for candidate, node in pending:
            node._path = candidate
            self._nodes[candidate] = node
        if parent:
            self._nodes[parent]._children.append(clone)
        else:
            self._roots.append(clone)

        log.debug("registered command %r (%d nodes)", path, len(pending))
        return clone

    def get(self, path, /):
        """
        Return the node registered at path, or None (the root has no node).
        """
        return self._nodes.get(join_path(path))

    def __getitem__(self, path):
        try:
            return self._nodes[join_path(path)]
        except KeyError:
            raise CommandNotFoundError(
                "command %r is not registered" % join_path(path),
                title="command not found",
                path=join_path(path),
                docs=getdoc(FaultCode.COMMAND_NOT_FOUND),
            ) from None

    def __contains__(self, path):
        try:
            return join_path(path) in self._nodes
        except TypeError:
            return False

    def __iter__(self):
        return iter(self._nodes)

    def __len__(self):
        return len(self._nodes)

    def __bool__(self):
        return bool(self._nodes)

    def children(self, path="", /):
        """
        Names of the direct children of path ("" lists top-level commands).
        """
        if not (path := join_path(path)):
            return [node.name for node in self._roots]
        return [node.name for node in self._nodes[path]._children]

    def child(self, path, name, /):
        """
        Path of the child named name under path, or None.
        """
        candidate = join_path(path, name)
        return candidate if candidate in self._nodes else None

    def resolve_path(self, segments, /):
        """
        Walk segments from the root as far as they name registered commands.

        Returns (path, consumed): the deepest matching path and how many
        segments were used.
        """
        path = ""
        consumed = 0
        for segment in segments:
            if (candidate := self.child(path, segment)) is None:
                break
            path = candidate
            consumed += 1
        return path, consumed

    def passthrough(self, path, /):
        """
        True when path or one of its ancestors is a passthrough command.
        """
        return any(self._nodes[ancestor].passthrough for ancestor in ancestors(path) if ancestor)

    def expects_subcommand(self, path, /):
        """
        True when path has children but no callback to run on its own.
        """
        node = self._nodes.get(join_path(path))
        return node is not None and not node.terminal and node.callback is None


__all__ = (
    "Command",
    "CommandTree",
)
