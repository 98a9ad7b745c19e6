"""
elfship - Relocate and deploy a foreign-built native binary

Packages a dynamically-linked executable built inside a reproducible build
environment (e.g. nix-shell) together with the libraries the target does not
provide, patches it for the target's loader, and installs it as a systemd
user service.
"""
import argparse
import sys

__version__ = "1.0.0"


def main():
    """Main CLI entry point"""
    from elfship.commands import build, deploy, plan, service

    parser = argparse.ArgumentParser(
        prog='elfship',
        description='elfship: relocate and deploy a foreign-built binary as a service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  elfship plan                          # Show which libraries would be bundled
  elfship build                         # Rebuild inside the build environment
  elfship deploy                        # Full deployment to the configured target
  elfship deploy --build                # Rebuild, then deploy
  elfship deploy --target root@10.0.0.5 # Deploy to another host
  elfship restart                       # Restart the deployed service
  elfship status                        # Show service status on the target
  elfship logs -n 500                   # Fetch the service journal
        '''
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Plan command
    plan_parser = subparsers.add_parser('plan', help='Classify libraries without deploying')
    plan.setup_parser(plan_parser)

    # Build command
    build_parser = subparsers.add_parser('build', help='Build the binary')
    build.setup_parser(build_parser)

    # Deploy command
    deploy_parser = subparsers.add_parser('deploy', help='Deploy to the target')
    deploy.setup_parser(deploy_parser)

    # Operator commands
    restart_parser = subparsers.add_parser('restart', help='Restart the deployed service')
    service.setup_restart_parser(restart_parser)

    status_parser = subparsers.add_parser('status', help='Show service status')
    service.setup_status_parser(status_parser)

    logs_parser = subparsers.add_parser('logs', help='Fetch service logs')
    service.setup_logs_parser(logs_parser)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Dispatch to command handler
    try:
        if args.command == 'plan':
            sys.exit(plan.execute(args))
        elif args.command == 'build':
            sys.exit(build.execute(args))
        elif args.command == 'deploy':
            sys.exit(deploy.execute(args))
        elif args.command == 'restart':
            sys.exit(service.execute_restart(args))
        elif args.command == 'status':
            sys.exit(service.execute_status(args))
        elif args.command == 'logs':
            sys.exit(service.execute_logs(args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
