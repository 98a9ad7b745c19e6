"""Plan command - show how the binary's libraries would be classified, without deploying"""
from elfship.commands import add_config_arguments, load_deploy_config
from elfship.core import BuildEnvironment, ConsoleLogger, LddInspector
from elfship.deploy import Classification, ConfigError, FatalPreconditionError
from elfship.deploy.classifier import LibraryClassifier
from elfship.deploy.extractor import DependencyExtractor
from elfship.deploy.patcher import target_rpath

MARKERS = {
    Classification.BUNDLED: "bundle",
    Classification.FORCE_BUNDLED: "bundle (forced)",
    Classification.SYSTEM_EXCLUDED: "target",
}


def setup_parser(parser):
    """Setup argument parser for plan command"""
    add_config_arguments(parser, target=False)


def execute(args):
    """Execute plan command"""
    logger = ConsoleLogger(verbose=args.verbose)

    try:
        config = load_deploy_config(args)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    env = BuildEnvironment(config.build.shell, config.build.shell_file, cwd=config.project_root)
    inspector = LddInspector(env, config.build.patch_packages)
    extractor = DependencyExtractor(inspector, logger)
    classifier = LibraryClassifier(
        inspector,
        logger,
        exclude=config.libraries.exclude,
        force_bundle=config.libraries.force_bundle
    )

    try:
        extraction = extractor.extract(config.binary_path)
    except FatalPreconditionError as e:
        logger.error(str(e))
        return 1

    result = classifier.classify(extraction.dependencies)
    artifact = extraction.artifact

    print("=" * 80)
    print(f"Binary: {artifact.path}")
    print(f"  Interpreter: {artifact.interpreter or 'unknown'}")
    print(f"  RPATH:       {artifact.rpath or 'unknown'}")
    print("=" * 80)

    width = max((len(lib.name) for lib in result.libraries), default=10)
    for lib in sorted(result.libraries, key=lambda l: (not l.classification.bundled, l.name)):
        print(f"  {lib.name:<{width}}  {MARKERS[lib.classification]:<16} {lib.source}")

    for name in extraction.unresolved:
        logger.warning(f"{name} is not resolvable in the build environment")
    for message in result.warnings:
        logger.warning(message)

    target = config.target
    print()
    print(f"{len(result.bundled)} bundled, {len(result.excluded)} from target")
    print(f"Target interpreter: {config.loader.interpreter}")
    print(f"Target RPATH:       {target_rpath(target.lib_dir, config.loader.system_lib_dirs)}")
    return 0
