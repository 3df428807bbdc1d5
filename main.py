import logging

from rich.logging import RichHandler
from rich.pretty import pprint

from cordage import *

parser = Parser(name="demo", env_prefix="demo", shell=True)
parser.add_command(Command("server", descr="manage the server"))
parser.add_flag("verbose", Argument(short="v", type=bool, descr="log parser decisions"))


@command(parser, "server start")
def start(
        port=Argument(short="p", type=int, default=8080, validators=[lambda port: 0 < port < 65536]),
        log_level=Argument(default="info", accepted=[PatternValue(r"^(debug|info|warn)$", "debug, info or warn")]),
):
    """Start the server."""
    pprint({"port": port, "log-level": log_level})


@command(parser, "server stop")
def stop(force=Argument(short="f", type=bool)):
    """Stop the server."""
    pprint({"force": force})


def verbosity(parser, command):
    if parser.get("verbose"):
        logging.basicConfig(level=logging.DEBUG, handlers=[RichHandler()], format="%(message)s")


parser.add_global_pre_hook(verbosity)


if __name__ == '__main__':
    raise SystemExit(invoke(parser))
