import sys
import logging
import argparse
from typing import List, Optional, TextIO

import uvloop

from objbench.common.errors import BenchmarkError
from objbench.common.scenario import BenchmarkScenario, PrefixMode, WorkloadKind
from objbench.configuration import (
    DEFAULT_UPLOAD_SIZE, DEFAULT_NUM_OBJECTS, DEFAULT_MULTI_UPLOAD_SIZE,
    DEFAULT_PARALLEL_DOWNLOADS, DEFAULT_PAGE_SIZES, DEFAULT_LOG_LEVEL,
    MAX_RETRIES, REQUEST_TIMEOUT_SECONDS, RETRY_DELAY_SECONDS,
)

logger = logging.getLogger(__name__)


def parse_page_sizes(value: str) -> List[int]:
    """Parse a comma-separated list of page sizes."""
    try:
        return [int(part) for part in value.split(',') if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Page sizes must be comma-separated integers: {value}")


class StorageBenchmarkCLI:
    """CLI interface for the storage I/O benchmark."""

    def __init__(self, output: TextIO = None):
        self.output = output
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            prog='objbench',
            description='Storage I/O benchmark: upload synthetic objects and measure range-read throughput',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Create a 1GB test object
  objbench file://$(pwd)/test.bin upload-data --size 1073741824

  # Test which parallelism works best
  objbench file://$(pwd)/test.bin download --parallel-downloads 10 >> results.ndjson

  # Columnar page reads with three columns
  objbench file://$(pwd)/test.bin columnar --page-sizes=4096,65536,10485760 >> results.ndjson

  # 100 objects under random prefixes in S3
  objbench s3://bucket/data upload-multiple --num-objects 100 --size 1073741824 --random-prefixes
            """
        )

        parser.add_argument('object_uri',
                            help='Storage URI (file:///path, s3://bucket/key, r2://bucket/key, memory://key)')
        parser.add_argument('--max-retries', type=int, default=MAX_RETRIES,
                            help=f'Retries per failed range read (default: {MAX_RETRIES})')
        parser.add_argument('--request-timeout', type=float, default=REQUEST_TIMEOUT_SECONDS,
                            help=f'Timeout per range read in seconds (default: {REQUEST_TIMEOUT_SECONDS})')
        parser.add_argument('--retry-delay', type=float, default=RETRY_DELAY_SECONDS,
                            help=f'Delay before a retry in seconds (default: {RETRY_DELAY_SECONDS})')
        parser.add_argument('--records-dir', type=str, default=None,
                            help='Save per-request records as Parquet in this directory')
        parser.add_argument('--metrics-port', type=int, default=None,
                            help='Expose Prometheus metrics on this port while running')
        parser.add_argument('--log-level', default=DEFAULT_LOG_LEVEL,
                            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                            help=f'Logging level (default: {DEFAULT_LOG_LEVEL})')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Upload a single object
        upload_parser = subparsers.add_parser(
            'upload-data', help='Upload a test object (overwrites existing data)')
        upload_parser.add_argument('--size', type=int, default=DEFAULT_UPLOAD_SIZE,
                                   help=f'Object size in bytes (default: {DEFAULT_UPLOAD_SIZE})')

        # Upload many objects
        multi_parser = subparsers.add_parser('upload-multiple', help='Upload multiple test objects')
        multi_parser.add_argument('--num-objects', type=int, default=DEFAULT_NUM_OBJECTS,
                                  help=f'Number of objects (default: {DEFAULT_NUM_OBJECTS})')
        multi_parser.add_argument('--size', type=int, default=DEFAULT_MULTI_UPLOAD_SIZE,
                                  help=f'Total bytes across all objects (default: {DEFAULT_MULTI_UPLOAD_SIZE})')
        multi_parser.add_argument('--random-prefixes', action='store_true',
                                  help='Put each object under a random key prefix')

        # Parallel download
        download_parser = subparsers.add_parser(
            'download', help='Time downloading an object (or prefix) with parallel range reads')
        download_parser.add_argument('--parallel-downloads', type=int, default=DEFAULT_PARALLEL_DOWNLOADS,
                                     help=f'Maximum requests in flight (default: {DEFAULT_PARALLEL_DOWNLOADS})')
        download_parser.add_argument('--block-size', type=int, default=None,
                                     help='Bytes per range read (default: object size / parallel downloads)')

        # Columnar reads
        columnar_parser = subparsers.add_parser(
            'columnar', help='Simulate columnar page reads over an object')
        columnar_parser.add_argument('--parallel-downloads', type=int, default=DEFAULT_PARALLEL_DOWNLOADS,
                                     help=f'Maximum requests in flight (default: {DEFAULT_PARALLEL_DOWNLOADS})')
        columnar_parser.add_argument('--page-sizes', type=parse_page_sizes,
                                     default=list(DEFAULT_PAGE_SIZES),
                                     help='Comma-separated page sizes, one per column '
                                          f'(default: {",".join(map(str, DEFAULT_PAGE_SIZES))})')

        return parser

    def build_scenario(self, args) -> BenchmarkScenario:
        """Translate parsed arguments into a scenario."""
        if args.command == 'upload-data':
            return BenchmarkScenario(
                workload=WorkloadKind.UPLOAD,
                uri=args.object_uri,
                object_size=args.size,
            )
        if args.command == 'upload-multiple':
            return BenchmarkScenario(
                workload=WorkloadKind.UPLOAD_MULTIPLE,
                uri=args.object_uri,
                object_size=args.size,
                num_objects=args.num_objects,
                prefix_mode=PrefixMode.RANDOM if args.random_prefixes else PrefixMode.SEQUENTIAL,
            )
        if args.command == 'download':
            return BenchmarkScenario(
                workload=WorkloadKind.DOWNLOAD,
                uri=args.object_uri,
                concurrency=args.parallel_downloads,
                block_size=args.block_size,
            )
        if args.command == 'columnar':
            return BenchmarkScenario(
                workload=WorkloadKind.COLUMNAR,
                uri=args.object_uri,
                concurrency=args.parallel_downloads,
                page_sizes=tuple(args.page_sizes),
            )
        raise ValueError(f"Unknown command: {args.command}")

    def _create_exporter(self, args):
        if args.metrics_port is None:
            return None
        from objbench.persistence.prom import PrometheusExporter

        exporter = PrometheusExporter(port=args.metrics_port)
        exporter.start_server()
        return exporter

    async def run_upload(self, scenario, args):
        """Run an upload workload."""
        from objbench.commands.uploader import Uploader

        logger.info(f"=== {scenario.workload.value} ===")

        uploader = Uploader(scenario, records_dir=args.records_dir,
                            exporter=self._create_exporter(args))
        return await uploader.upload()

    async def run_benchmark(self, scenario, args):
        """Run a download or columnar workload."""
        from objbench.commands.benchmark import BenchmarkRunner

        logger.info(f"=== {scenario.workload.value} ===")

        runner = BenchmarkRunner(
            scenario,
            records_dir=args.records_dir,
            exporter=self._create_exporter(args),
            max_retries=args.max_retries,
            request_timeout=args.request_timeout,
            retry_delay=args.retry_delay,
        )
        return await runner.run_benchmark()

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if not logging.root.handlers:
            logging.basicConfig(level=parsed_args.log_level, stream=sys.stderr,
                                format='%(asctime)s - %(levelname)s - %(message)s')

        if not parsed_args.command:
            self.parser.print_help(sys.stderr)
            return 1

        try:
            scenario = self.build_scenario(parsed_args).validate()

            if scenario.workload in (WorkloadKind.UPLOAD, WorkloadKind.UPLOAD_MULTIPLE):
                result = uvloop.run(self.run_upload(scenario, parsed_args))
            else:
                result = uvloop.run(self.run_benchmark(scenario, parsed_args))

            result.write(self.output or sys.stdout)
            return 0

        except BenchmarkError as e:
            logger.error(f"{type(e).__name__}: {e}")
            return 1
        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            return 1


def main():
    """Main entry point."""
    cli = StorageBenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
