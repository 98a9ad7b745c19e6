"""Deploy command - relocate the binary and install it as a service on the target"""
from elfship.commands import add_config_arguments, load_deploy_config
from elfship.core import BuildEnvironment, ConsoleLogger
from elfship.deploy import ConfigError, FatalPreconditionError, TargetFactory
from elfship.deploy.lifecycle import USER_SYSTEMCTL
from elfship.deploy.pipeline import summarize
from elfship.utils.build_helper import build_binary


def setup_parser(parser):
    """Setup argument parser for deploy command"""
    add_config_arguments(parser)
    parser.add_argument(
        '--build',
        action='store_true',
        help='Rebuild the binary inside the build environment first'
    )


def restart_hint(config) -> str:
    target = config.target
    port = f"-p {target.ssh_port} " if target.ssh_port != 22 else ""
    # Escaped so the operator's shell leaves $(id -u) for the target.
    systemctl = USER_SYSTEMCTL.replace("$(", "\\$(")
    return (
        f"ssh {port}{target.privileged_user}@{target.host} "
        f"\"su - {target.service_user} -c '{systemctl} restart {target.unit_name}'\""
    )


def execute(args):
    """Execute deploy command"""
    logger = ConsoleLogger(verbose=args.verbose)

    try:
        config = load_deploy_config(args)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    print("=" * 80)
    print(f"Deploying {config.build.binary} to {config.target.describe()}")
    print("=" * 80)

    if args.build:
        env = BuildEnvironment(config.build.shell, config.build.shell_file, cwd=config.project_root)
        try:
            build_binary(config, env, logger, verbose=args.verbose)
        except FatalPreconditionError as e:
            logger.error(str(e))
            return 1

    pipeline = TargetFactory.create_pipeline(config, logger)
    report = pipeline.run()
    summarize(report, logger, restart_hint=restart_hint(config))

    return report.exit_code
