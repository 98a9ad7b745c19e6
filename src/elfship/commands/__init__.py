"""CLI sub-commands. Each module exposes setup_parser(parser) and execute(args)."""
from elfship.core import YamlConfigLoader
from elfship.deploy import DeployConfig, TargetFactory, load_config
from elfship.deploy.config import DEFAULT_CONFIG_PATH


def add_config_arguments(parser, target: bool = True):
    """Arguments shared by every command that needs the deploy config"""
    parser.add_argument(
        '--config', '-c',
        default=DEFAULT_CONFIG_PATH,
        help=f'Deploy config file (default: {DEFAULT_CONFIG_PATH})'
    )
    if target:
        parser.add_argument(
            '--target',
            help='Override target as [user@]host[:port] (e.g., root@dramma.lan:2222)'
        )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show verbose output'
    )


def load_deploy_config(args) -> DeployConfig:
    """Load the config named on the command line and apply --target.

    Raises:
        ConfigError: If the config file is missing or invalid
        ValueError: If --target is malformed
    """
    config = load_config(args.config, YamlConfigLoader())
    target = getattr(args, 'target', None)
    if target:
        user, host, port = TargetFactory.parse(target)
        config = config.with_target(host, port, user)
    return config
