#!/usr/bin/env python3
"""
calmmap CLI

Command-line interface for building the segment database and resolving
ranked street calming requests.
"""

import argparse
import logging
import sqlite3
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from calmmap.config_manager import CalmmapConfig, ConfigManager
from calmmap.core.adjacency import AdjacencyBuilder
from calmmap.errors import CalmmapError
from calmmap.export import GeoJSONExporter, KMLExporter, route_to_dot
from calmmap.loaders import load_kml_segments, load_requests_tsv
from calmmap.overrides import ChainedOverrideSource, DirectoryOverrideSource, MappingOverrideSource
from calmmap.pipeline import Pipeline, RequestHandler
from calmmap.review import render_report
from calmmap.store import SqliteSegmentStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calmmap",
        description="Resolve ranked street calming requests to street centreline segments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build the database from centrelines and requests
  %(prog)s builddb --centerlines-kml-file street_centrelines.kml \\
      --calming-requests-file street-calming-ranked-2020-11.tsv

  # Review how every request resolved
  %(prog)s review

  # Review only requests that failed
  %(prog)s review --failures-only

  # Export resolved requests as KML
  %(prog)s export -o requests.kml

  # Dump one route's segment graph for Graphviz
  %(prog)s routeviz 1234 | dot -Tpng > route.png
        """
    )

    parser.add_argument(
        '-c', '--config',
        type=Path,
        help='Configuration YAML file (default: built-in settings)'
    )
    parser.add_argument(
        '--database-file',
        type=Path,
        help='Database filename (default: data.db)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Minimal output (errors only)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    builddb = subparsers.add_parser('builddb', help='build database from centreline and request data')
    builddb.add_argument(
        '--centerlines-kml-file',
        type=Path,
        help='Street centrelines KML file'
    )
    builddb.add_argument(
        '--calming-requests-file',
        type=Path,
        help='Calming requests TSV file'
    )
    builddb.add_argument(
        '--rebuild',
        action='store_true',
        help='Replace existing segments, links and requests (kept if the load fails)'
    )

    review = subparsers.add_parser('review', help='show how requests resolve, stage by stage')
    review.add_argument(
        '--rank',
        type=int,
        action='append',
        help='Only review the request with this rank (repeatable)'
    )
    review.add_argument(
        '--failures-only',
        action='store_true',
        help='Only show requests that failed to resolve'
    )

    routeviz = subparsers.add_parser('routeviz', help='generate dot graph for a route id')
    routeviz.add_argument('route_id', type=int, help='Route ID')

    export = subparsers.add_parser('export', help='export map of resolved requests')
    export.add_argument(
        '-f', '--format',
        choices=['kml', 'geojson'],
        default='kml',
        help='Output format (default: kml)'
    )
    export.add_argument(
        '-o', '--output',
        type=Path,
        help='Output file (default: stdout for kml, requests.geojson for geojson)'
    )

    subparsers.add_parser('stats', help='show database statistics')

    init_config = subparsers.add_parser('init-config', help='write an example configuration file')
    init_config.add_argument('output', type=Path, help='Where to write the YAML file')

    return parser


def load_config(args: argparse.Namespace) -> CalmmapConfig:
    config = ConfigManager(args.config).load() if args.config else CalmmapConfig()
    if args.database_file:
        config.database_path = args.database_file
    return config


def configure_logging(args: argparse.Namespace, config: CalmmapConfig) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, config.log_level)
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def open_store(config: CalmmapConfig) -> SqliteSegmentStore:
    builder = AdjacencyBuilder(
        threshold=config.proximity_threshold,
        metric=config.distance_metric,
    )
    return SqliteSegmentStore(config.database_path, builder=builder)


def build_handler(store: SqliteSegmentStore, config: CalmmapConfig) -> RequestHandler:
    sources = []
    if config.overrides_file:
        sources.append(MappingOverrideSource.from_yaml(config.overrides_file))
    if config.overrides_dir:
        sources.append(DirectoryOverrideSource(config.overrides_dir))
    return RequestHandler(store, ChainedOverrideSource(sources))


def cmd_builddb(args, config: CalmmapConfig) -> int:
    kml_path = args.centerlines_kml_file or config.centerlines_kml
    tsv_path = args.calming_requests_file or config.requests_tsv

    for path in (kml_path, tsv_path):
        if not path.exists():
            print(f"❌ Error: Input file not found: {path}", file=sys.stderr)
            return 1

    segments = load_kml_segments(kml_path)
    requests = load_requests_tsv(tsv_path)

    store = open_store(config)
    try:
        store.load_segments(segments, requests=requests, replace=args.rebuild)
    except sqlite3.IntegrityError as e:
        print(f"❌ Error: {e} (database already built? use --rebuild)", file=sys.stderr)
        return 1

    if not args.quiet:
        stats = store.get_statistics()
        print(f"✅ Built {config.database_path}")
        print(f"   Segments: {stats['segments']} on {stats['routes']} routes")
        print(f"   Links:    {stats['links']}")
        print(f"   Requests: {stats['requests']}")
    return 0


def cmd_review(args, config: CalmmapConfig) -> int:
    store = open_store(config)
    handler = build_handler(store, config)

    requests = store.requests()
    if args.rank:
        requests = [req for req in requests if req.rank in set(args.rank)]

    result = Pipeline(handler, name=config.name).run(requests)
    sys.stdout.write(render_report(result.attempts, failures_only=args.failures_only))

    if not args.quiet:
        print(f"\nResolved {result.total_succeeded}/{result.total_requests} requests")
    return 0


def cmd_routeviz(args, config: CalmmapConfig) -> int:
    store = open_store(config)
    try:
        sys.stdout.write(route_to_dot(store, args.route_id))
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_export(args, config: CalmmapConfig) -> int:
    store = open_store(config)
    handler = build_handler(store, config)

    requests = store.requests()
    result = Pipeline(handler, name=config.name).run(requests)

    if args.format == 'kml':
        exporter = KMLExporter(
            color_stops=config.color_stops,
            color_count=config.color_count,
            line_width=config.line_width,
        )
        if args.output:
            exporter.export(result.resolved(), len(requests), args.output)
        else:
            tree = ET.ElementTree(exporter.build(result.resolved(), len(requests)))
            ET.indent(tree, space="  ")
            tree.write(sys.stdout, encoding="unicode", xml_declaration=True)
            sys.stdout.write("\n")
    else:
        output = args.output or Path("requests.geojson")
        GeoJSONExporter().export(result.resolved(), output)

    logger.info(f"Exported {result.total_succeeded} of {result.total_requests} requests")
    return 0


def cmd_stats(args, config: CalmmapConfig) -> int:
    stats = open_store(config).get_statistics()

    print("\n" + "=" * 60)
    print(f"📊 Database Statistics: {config.database_path}")
    print("=" * 60)
    print(f"Segments:  {stats['segments']}")
    print(f"Routes:    {stats['routes']}")
    print(f"Links:     {stats['links']}")
    print(f"Requests:  {stats['requests']}")
    print("=" * 60)
    return 0


def cmd_init_config(args, config: CalmmapConfig) -> int:
    ConfigManager().save_example_config(args.output)
    if not args.quiet:
        print(f"Saved example configuration to {args.output}")
    return 0


COMMANDS = {
    'builddb': cmd_builddb,
    'review': cmd_review,
    'routeviz': cmd_routeviz,
    'export': cmd_export,
    'stats': cmd_stats,
    'init-config': cmd_init_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error loading configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(args, config)

    try:
        return COMMANDS[args.command](args, config)
    except CalmmapError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
