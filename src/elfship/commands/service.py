"""Operator commands for the deployed service: restart, status, logs.

These act on an already deployed target; none of them runs during a deploy.
"""
from pathlib import Path

from elfship.commands import add_config_arguments, load_deploy_config
from elfship.core import ConsoleLogger, SSHExecutor
from elfship.deploy import ConfigError, DeploymentError
from elfship.deploy.lifecycle import ServiceLifecycleManager


def _manager(config, logger):
    target = config.target
    executor = SSHExecutor(
        target.host,
        target.service_user,
        privileged_user=target.privileged_user,
        ssh_port=target.ssh_port
    )
    return executor, ServiceLifecycleManager(executor, logger)


def setup_restart_parser(parser):
    """Setup argument parser for restart command"""
    add_config_arguments(parser)


def setup_status_parser(parser):
    """Setup argument parser for status command"""
    add_config_arguments(parser)


def setup_logs_parser(parser):
    """Setup argument parser for logs command"""
    add_config_arguments(parser)
    parser.add_argument(
        '--lines', '-n',
        type=int,
        default=200,
        help='Number of journal lines to fetch (default: 200)'
    )
    parser.add_argument(
        '--output', '-o',
        help='Write the journal to this file instead of stdout'
    )


def _run(args, action):
    logger = ConsoleLogger(verbose=args.verbose)
    try:
        config = load_deploy_config(args)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    executor, manager = _manager(config, logger)
    try:
        executor.check_connection()
        return action(config, manager, logger)
    except DeploymentError as e:
        logger.error(str(e))
        return 1


def execute_restart(args):
    """Execute restart command"""
    def action(config, manager, logger):
        manager.restart(config.target)
        logger.info(f"✓ Restarted {config.target.unit_name} on {config.target.host}")
        return 0
    return _run(args, action)


def execute_status(args):
    """Execute status command"""
    def action(config, manager, logger):
        result = manager.status(config.target)
        print(result.stdout.rstrip() or result.stderr.rstrip())
        # systemctl status: 3 = inactive, 4 = no such unit
        return 0 if result.ok else 1
    return _run(args, action)


def execute_logs(args):
    """Execute logs command"""
    def action(config, manager, logger):
        result = manager.logs(config.target, lines=args.lines)
        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(result.stdout)
            logger.info(f"✓ Wrote {len(result.stdout)} bytes to {output}")
        else:
            print(result.stdout, end="")
        return 0
    return _run(args, action)
