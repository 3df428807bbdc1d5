"""
Cordage signature translation: declare a command with a plain function.

The decorated function's parameters become flags: every parameter whose default
is an Argument is registered as --name (underscores become dashes) at the
command's path. The registered callback calls the function with the bound
values as keyword arguments. Only Parser.add_command/add_flag are used; the
parser itself never inspects the function.

Example
    parser = Parser()

    @command(parser, "server start", descr="start the server")
    def start(port=Argument(type=int, default=8080), log_level=Argument(default="info")):
        ...

    parser.parse(["server", "start", "--port", "9000", "--log-level", "debug"])
"""
import inspect
from inspect import Parameter

from .arguments import Argument
from .commands import Command
from .utils import *


def _discover(function):
    """
    Map flag names to (parameter name, Argument) from function's defaults.
    """
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        raise TypeError("@command() must be applied to an inspectable callable") from None

    flags = {}
    for parameter in signature.parameters.values():
        if not isinstance(parameter.default, Argument):
            if parameter.default is Parameter.empty and parameter.kind not in (
                Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD
            ):
                raise TypeError(f"@command() parameter {parameter.name!r} must have a default")
            continue
        if parameter.kind not in (Parameter.POSITIONAL_OR_KEYWORD, Parameter.KEYWORD_ONLY):
            raise TypeError(f"@command() parameter {parameter.name!r} must accept a keyword")
        flags[parameter.name.replace("_", "-")] = (parameter.name, parameter.default)
    return flags


def command(parser, path, /, *, descr=Unset, passthrough=False):
    """
    Register the decorated function as the command at path and return it.

    The parent of path must already be registered. The description defaults to
    the first line of the function's docstring.
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("@command() path cannot be empty")

    @rename("command")
    def wrapper(function, /):
        flags = _discover(function)

        @rename(function.__name__)
        def callback(parser, command):
            return function(**{
                parameter: parser.get(name, command.path) for name, (parameter, _) in flags.items()
            })

        if descr is Unset and (doc := inspect.getdoc(function)):
            summary = doc.splitlines()[0]
        else:
            summary = descr

        parser.add_command(
            Command(segments[-1], callback, descr=summary, passthrough=passthrough),
            " ".join(segments[:-1]),
        )
        for name, (_, argument) in flags.items():
            parser.add_flag(name, argument, " ".join(segments))
        return function

    return wrapper


__all__ = (
    "command",
)
