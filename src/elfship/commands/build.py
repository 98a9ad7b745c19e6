"""Build command - rebuild the binary inside the build environment"""
from elfship.commands import add_config_arguments, load_deploy_config
from elfship.core import BuildEnvironment, ConsoleLogger
from elfship.deploy import ConfigError, FatalPreconditionError
from elfship.utils.build_helper import build_binary


def setup_parser(parser):
    """Setup argument parser for build command"""
    add_config_arguments(parser, target=False)


def execute(args):
    """Execute build command"""
    logger = ConsoleLogger(verbose=args.verbose)

    try:
        config = load_deploy_config(args)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    env = BuildEnvironment(config.build.shell, config.build.shell_file, cwd=config.project_root)
    try:
        build_binary(config, env, logger, verbose=args.verbose)
    except FatalPreconditionError as e:
        logger.error(str(e))
        return 1

    return 0
