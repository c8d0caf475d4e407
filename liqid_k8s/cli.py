"""Command line entry point for liqid-k8s-annotate."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from liqid_k8s import __version__
from liqid_k8s.commands import (
    AutoCommand,
    Command,
    CommandType,
    LabelCommand,
    LinkCommand,
    NodesCommand,
    ResourcesCommand,
    UnlabelCommand,
    UnlinkCommand,
)
from liqid_k8s.config import Settings, load_settings
from liqid_k8s.constants import GeneralType
from liqid_k8s.errors import (
    ConfigurationDataError,
    ConfigurationError,
    FabricError,
    InternalError,
    ProcessingError,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_PROCESSING = 3
EXIT_INTERNAL = 4
EXIT_REMOTE = 5


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="YAML settings file")
    common.add_argument("--proxy-url", help="URL of a kubectl proxy")
    common.add_argument("--timeout", type=int, help="client timeout in seconds")
    common.add_argument("--log-level", help="logging level (DEBUG, INFO, WARNING, ...)")
    common.add_argument("--log-file", help="write logs to this file")
    common.add_argument("--fabric-port", type=int, help="REST port of the Liqid Director")

    mutating = argparse.ArgumentParser(add_help=False)
    mutating.add_argument("--force", action="store_true", default=None, help="proceed despite warnings")
    mutating.add_argument("--no-update", action="store_true", default=None, help="show the plan without executing it")

    parser = argparse.ArgumentParser(
        prog="liqid-k8s-annotate",
        description="Annotate Kubernetes worker nodes with Liqid Cluster resources",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser(CommandType.LINK.value, parents=[common, mutating], help="link to a Liqid Cluster group")
    p.add_argument("--address", required=True, help="Liqid Director address")
    p.add_argument("--group", required=True, help="Liqid Cluster group name")
    p.add_argument("--username")
    p.add_argument("--password")

    sub.add_parser(CommandType.UNLINK.value, parents=[common, mutating], help="remove the linkage")

    p = sub.add_parser(CommandType.LABEL.value, parents=[common, mutating], help="annotate one worker node")
    p.add_argument("--node", required=True)
    p.add_argument("--machine", required=True)
    p.add_argument("--gpus", type=int)
    p.add_argument("--fpgas", type=int)
    p.add_argument("--memory", type=int)
    p.add_argument("--ssds", type=int)
    p.add_argument("--links", type=int)

    p = sub.add_parser(CommandType.UNLABEL.value, parents=[common, mutating], help="remove annotations")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--node")
    target.add_argument("--all", action="store_true")

    sub.add_parser(CommandType.NODES.value, parents=[common], help="list worker nodes and annotations")

    p = sub.add_parser(CommandType.RESOURCES.value, parents=[common], help="list Liqid resources")
    p.add_argument("--all", action="store_true", help="list the whole fabric, not only the linked group")

    sub.add_parser(CommandType.AUTO.value, parents=[common, mutating], help="annotate all worker nodes")
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    return load_settings(args.config).with_overrides(
        proxy_url=args.proxy_url,
        timeout_s=args.timeout,
        log_level=args.log_level.upper() if args.log_level else None,
        log_file=args.log_file,
        fabric_port=args.fabric_port,
        force=getattr(args, "force", None),
        no_update=getattr(args, "no_update", None),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        filename=settings.log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_command(args: argparse.Namespace, settings: Settings, **kwargs) -> Command:
    command_type = CommandType(args.command)
    if command_type == CommandType.LINK:
        return LinkCommand(settings, args.address, args.group, args.username, args.password, **kwargs)
    if command_type == CommandType.UNLINK:
        return UnlinkCommand(settings, **kwargs)
    if command_type == CommandType.LABEL:
        counts = {
            GeneralType.gpu: args.gpus,
            GeneralType.fpga: args.fpgas,
            GeneralType.memory: args.memory,
            GeneralType.ssd: args.ssds,
            GeneralType.link: args.links,
        }
        return LabelCommand(settings, args.node, args.machine, counts, **kwargs)
    if command_type == CommandType.UNLABEL:
        return UnlabelCommand(settings, node_name=args.node, all_nodes=args.all, **kwargs)
    if command_type == CommandType.NODES:
        return NodesCommand(settings, **kwargs)
    if command_type == CommandType.RESOURCES:
        return ResourcesCommand(settings, show_all=args.all, **kwargs)
    return AutoCommand(settings, **kwargs)


def run(command: Command) -> int:
    """Process a command and map its outcome to an exit code."""
    try:
        return EXIT_OK if command.process() else EXIT_FAILED
    except (ConfigurationError, ConfigurationDataError) as e:
        code = EXIT_CONFIGURATION
        message = str(e)
    except ProcessingError as e:
        code = EXIT_PROCESSING
        message = str(e)
    except InternalError as e:
        code = EXIT_INTERNAL
        message = str(e)
    except FabricError as e:
        code = EXIT_REMOTE
        message = str(e)
    except ApiException as e:
        code = EXIT_REMOTE
        message = f"Kubernetes API error {e.status}: {e.reason}"
    except HTTPError as e:
        code = EXIT_REMOTE
        message = f"Kubernetes API unreachable: {e}"
    logger.error(message, exc_info=True)
    print(f"ERROR:{message}", file=sys.stderr)
    return code


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ConfigurationError as e:
        print(f"ERROR:{e}", file=sys.stderr)
        return EXIT_CONFIGURATION
    configure_logging(settings)
    logger.debug(f"Settings: {settings}")
    return run(create_command(args, settings))


if __name__ == "__main__":
    sys.exit(main())
