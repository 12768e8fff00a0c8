import argparse
import logging
import os
from collections import OrderedDict
from typing import List, Optional

from dotenv import dotenv_values

from orgchart.config import StorageConfig, StorageFormat
from orgchart.models import Unit
from orgchart.persistence import StorageStrategy, storage_factory
from orgchart.validation import StructuralValidator

ENV_PREFIX = 'ORGCHART_'


class OrgChartCli:
    """Command line front end: convert, validate and inspect chart files."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        formats = [storage_format.value for storage_format in StorageFormat]
        parser = argparse.ArgumentParser(
            prog='orgchart',
            description="Convert and check organizational chart files."
        )
        parser.add_argument(
            '--env-files',
            type=str,
            action='append',
            help="Path to an environment file; repeat the option for several files, later files win.",
            default=[]
        )
        subparsers = parser.add_subparsers(dest="command", help="Subcommand to run")

        convert = subparsers.add_parser('convert', help="Load a chart and save it in another format.")
        convert.add_argument('source')
        convert.add_argument('destination')
        convert.add_argument('--from', dest='source_format', choices=formats, default=None,
                             help="Format of the source, guessed from the extension by default.")
        convert.add_argument('--to', dest='destination_format', choices=formats, default=None,
                             help="Format of the destination, guessed from the extension by default.")

        validate = subparsers.add_parser('validate', help="Report structural violations and warnings.")
        validate.add_argument('source')
        validate.add_argument('--format', dest='source_format', choices=formats, default=None)

        info = subparsers.add_parser('info', help="Print a summary of a chart file.")
        info.add_argument('source')
        info.add_argument('--format', dest='source_format', choices=formats, default=None)
        return parser

    def _load_from_cli_args(self, args):
        """Merge the env files given on the command line, later files win."""
        merged_env = []
        for env_file in args.env_files:
            if os.path.exists(env_file) and os.path.isfile(env_file):
                merged_env += list(dotenv_values(env_file).items())
            else:
                self.parser.error(f"{env_file} file not found.")
                return None
        return OrderedDict(merged_env)

    def load_config(self, args) -> StorageConfig:
        overrides = {}
        for key, value in self._load_from_cli_args(args).items():
            if key.upper().startswith(ENV_PREFIX) and value is not None:
                overrides[key.upper()[len(ENV_PREFIX):]] = value
        return StorageConfig(**overrides)

    def strategy(self, path: str, storage_format: Optional[str], config: StorageConfig) -> StorageStrategy:
        if storage_format:
            return storage_factory.get(storage_format, config)
        try:
            return storage_factory.for_path(path, config)
        except ValueError as ex:
            self.parser.error(str(ex))

    @staticmethod
    def _print_report(strategy: StorageStrategy):
        report = strategy.last_report
        if report.fallback_reason:
            print(f"Fallback: {report.fallback_reason}")
        for issue in report.references:
            print(f"Unresolved reference: {issue}")
        for warning in report.warnings:
            print(f"Warning: {warning}")

    def convert(self, args, config: StorageConfig) -> int:
        source = self.strategy(args.source, args.source_format, config)
        destination = self.strategy(args.destination, args.destination_format, config)

        root = source.load(args.source)
        self._print_report(source)
        if root is None:
            print(f"Cannot load {args.source}: {source.last_report.reason}")
            return 1
        if not destination.save(root, args.destination):
            print(f"Cannot save {args.destination}: {destination.last_report.reason}")
            return 1
        print(f"Converted {args.source} ({source.FORMAT}) to {args.destination} ({destination.FORMAT})")
        return 0

    def validate(self, args, config: StorageConfig) -> int:
        config = config.copy(update={'VALIDATE_ON_LOAD': False})
        source = self.strategy(args.source, args.source_format, config)
        root = source.load(args.source)
        self._print_report(source)
        if root is None:
            print(f"Cannot load {args.source}: {source.last_report.reason}")
            return 1

        result = StructuralValidator(load_time=True).validate(root)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        for violation in result.violations:
            print(f"Violation: {violation}")
        print("OK" if result.ok else f"{len(result.violations)} violation(s)")
        return 0 if result.ok else 1

    def info(self, args, config: StorageConfig) -> int:
        source = self.strategy(args.source, args.source_format, config)
        root = source.load(args.source)
        if root is None:
            print(f"Cannot load {args.source}: {source.last_report.reason}")
            return 1
        for line in summarize(root):
            print(line)
        if source.last_report.root_rule:
            print(f"Root chosen by rule: {source.last_report.root_rule}")
        self._print_report(source)
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 2

        config = self.load_config(args)
        if not logging.getLogger().hasHandlers():
            logging.basicConfig(
                level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        if args.command == 'convert':
            return self.convert(args, config)
        elif args.command == 'validate':
            return self.validate(args, config)
        else:
            return self.info(args, config)


def summarize(root: Unit) -> List[str]:
    units = list(root.walk())
    roles = sum(len(unit.roles) for unit in units)
    employees = {employee.entity_id for unit in units for employee in unit.employees()}
    return [
        f"Root: {root.name} ({root.kind.value})",
        f"Units: {len(units)}",
        f"Roles: {roles}",
        f"Employees: {len(employees)}",
    ]


def main():
    cli = OrgChartCli()
    return cli.run()


if __name__ == "__main__":
    raise SystemExit(main())
