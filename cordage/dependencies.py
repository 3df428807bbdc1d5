"""
Cordage dependency graph: flag-to-flag rules checked after binding.

Rules
- depends-on: source → target, optionally restricted to target values
  ("--format" requires "--output", "--compress" requires "--format=zip").
  Values compare case-insensitively with the target's raw value.
- conflicts: source and target must not be bound together.

Edges are stored per source FlagKey with the target's flag *name*; the name is
resolved lazily from the source's command path through the flag registry, so a
rule follows the visibility rules of the flag that declares it.

Cycles are rejected when an edge is added: a depth-first walk from the target
(with a recursion stack) that reaches the source means the new edge would close
a cycle, and the graph is left as it was.
"""
import logging

from .faults import *
from .utils import *

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


class DependencyGraph:
    """
    Directed dependency edges and conflict pairs between registered flags.
    """

    def __init__(self, *, max_depth=DEFAULT_MAX_DEPTH):
        if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 1:
            raise ValueError("dependency graph 'max_depth' must be a positive integer")
        self._max_depth = max_depth
        self._edges = {}
        self._conflicts = {}

    @property
    def max_depth(self):
        return self._max_depth

    def dependencies(self, source, /):
        """
        A fresh {target name: (values, ...)} mapping for source.
        """
        return dict(self._edges.get(source, {}))

    def conflicts(self, source, /):
        return tuple(self._conflicts.get(source, ()))

    def __contains__(self, edge):
        source, target = edge
        return target in self._edges.get(source, {})

    def _targets(self, key, resolve, overlay):
        edges = overlay.get(key, self._edges.get(key, {}))
        for name in edges:
            if (target := resolve(name, key.path)) is not None:
                yield target

    def _cycle(self, source, resolve, overlay):
        """
        Return the cycle (list of keys) closed by source's edges, or None.
        """
        stack = [source]
        onstack = {source}
        done = set()

        def visit(key):
            for target in self._targets(key, resolve, overlay):
                if target in onstack:
                    return stack[stack.index(target):] + [target]
                if target in done:
                    continue
                stack.append(target)
                onstack.add(target)
                if cycle := visit(target):
                    return cycle
                onstack.discard(stack.pop())
                done.add(target)
            return None

        return visit(source)

    def extend(self, source, rules, /, *, resolve):
        """
        Add every {target: values} rule of source at once, or none of them.

        resolve(name, path) must return the FlagKey a name designates from a
        command path (or None when no such flag is visible).
        """
        merged = self.dependencies(source)
        for target, values in rules.items():
            if not isinstance(target, str) or not (target := target.strip().lstrip("-")):
                raise TypeError("dependency target must be a flag name")
            merged[target] = tuple(map(str, values))

        if cycle := self._cycle(source, resolve, {source: merged}):
            raise CircularDependencyError(
                "dependency of %s would create a cycle: %s" % (source, " → ".join(map(str, cycle))),
                title="circular dependency",
                flag=source,
                cycle=tuple(cycle),
                hint="remove one of the dependencies in the cycle",
                docs=getdoc(FaultCode.CIRCULAR_DEPENDENCY),
            )

        if merged:
            self._edges[source] = merged
        log.debug("dependencies of %s: %r", source, merged)

    def add(self, source, target, values=(), /, *, resolve):
        self.extend(source, {target: values}, resolve=resolve)

    def remove(self, source, target, /):
        """
        Remove the dependency of source on target.
        """
        target = target.strip().lstrip("-")
        try:
            del self._edges[source][target]
        except KeyError:
            raise DependencyNotDeclaredError(
                "%s does not depend on --%s" % (source, target),
                title="dependency not declared",
                flag=source,
                target=target,
                docs=getdoc(FaultCode.DEPENDENCY_NOT_DECLARED),
            ) from None
        if not self._edges[source]:
            del self._edges[source]

    def conflict(self, source, *targets):
        """
        Declare that source cannot be bound together with any of targets.
        """
        names = list(self._conflicts.get(source, ()))
        for target in targets:
            if (target := target.strip().lstrip("-")) not in names:
                names.append(target)
        if names:
            self._conflicts[source] = tuple(names)

    def discard(self, source, /):
        """
        Forget every rule declared by source.
        """
        self._edges.pop(source, None)
        self._conflicts.pop(source, None)

    def _depth(self, source, resolve, bound):
        """
        Length of the longest chain of bound dependencies starting at source.
        """
        deepest = 0
        stack = [(source, 0, frozenset({source}))]
        while stack:
            key, depth, seen = stack.pop()
            deepest = max(deepest, depth)
            if deepest > self._max_depth:
                break
            for target in self._targets(key, resolve, {}):
                if target in bound and target not in seen:
                    stack.append((target, depth + 1, seen | {target}))
        return deepest

    def validate(self, bound, raw, /, *, resolve):
        """
        Check every rule of the bound flags; return the faults found.

        - bound: collection of bound FlagKeys.
        - raw: mapping FlagKey -> list of raw strings.
        """
        faults = []
        reported = set()

        for source in bound:
            for name, values in self._edges.get(source, {}).items():
                target = resolve(name, source.path)
                if target is None or target not in bound:
                    faults.append(DependencyNotFoundError(
                        "%s requires --%s, which was not given" % (source, name),
                        title="missing dependency",
                        flag=source,
                        target=name,
                        hint="add --%s%s" % (name, "=" + values[0] if values else ""),
                        docs=getdoc(FaultCode.DEPENDENCY_NOT_FOUND),
                    ))
                    continue
                given = [value.casefold() for value in raw.get(target, ())]
                if values and not any(value.casefold() in given for value in values):
                    faults.append(DependencyValueNotSpecifiedError(
                        "%s requires --%s to be one of %s, got %s" % (
                            source, name, ", ".join(map(repr, values)), ", ".join(map(repr, raw.get(target, ())))
                        ),
                        title="dependency value not specified",
                        flag=source,
                        target=target,
                        values=values,
                        hint="set --%s to one of: %s" % (name, ", ".join(values)),
                        docs=getdoc(FaultCode.DEPENDENCY_VALUE_NOT_SPECIFIED),
                    ))

            if (depth := self._depth(source, resolve, bound)) > self._max_depth:
                faults.append(DependencyDepthExceededError(
                    "dependency chain of %s is deeper than %d" % (source, self._max_depth),
                    title="dependency depth exceeded",
                    flag=source,
                    depth=depth,
                    limit=self._max_depth,
                    docs=getdoc(FaultCode.DEPENDENCY_DEPTH_EXCEEDED),
                ))

            for name in self._conflicts.get(source, ()):
                target = resolve(name, source.path)
                if target is None or target not in bound or frozenset((source, target)) in reported:
                    continue
                reported.add(frozenset((source, target)))
                faults.append(ConflictingFlagsError(
                    "%s cannot be used together with %s" % (source, target),
                    title="conflicting flags",
                    flag=source,
                    target=target,
                    hint="drop one of the two flags",
                    docs=getdoc(FaultCode.CONFLICTING_FLAGS),
                ))

        log.debug("dependency validation: %d fault(s)", len(faults))
        return faults


__all__ = (
    "DependencyGraph",
)
