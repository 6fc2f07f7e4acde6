"""CLI interface for Gemini batch processing."""
import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from domain.exceptions import DomainException
from domain.models import Job, RemoteFile
from infrastructure.config import ConfigLoader, BatchConfig
from application.orchestrator import BatchOrchestrator
from application.factories import BatchClientFactory
from application.jsonl_builder import JsonlRequestBuilder
from shared.logging import setup_logger, get_logger, mask_secret, LoggerAdapter, ROOT_LOGGER
from shared.metrics import MetricsCollector

__version__ = "1.0.0"

logger = get_logger('cli')


def format_bytes(size: Optional[int]) -> str:
    """Human readable byte count."""
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "kB", "MB", "GB"):
        if value < 1000 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1000
    return f"{value:.1f} GB"


def format_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """Render rows as a plain-text table."""
    cells = [[str(c) if c not in (None, "") else "-" for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values):
        return "  ".join(v.ljust(widths[i]) for i, v in enumerate(values)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in cells)
    return "\n".join(out)


def create_orchestrator_from_config(config: BatchConfig) -> BatchOrchestrator:
    """Create orchestrator with a freshly built client."""
    client = BatchClientFactory(config).create_client()
    return BatchOrchestrator(
        client=client,
        config=config,
        logger=LoggerAdapter(get_logger('orchestrator')),
        metrics=MetricsCollector(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gemini-batch", description="Batch processing for Google Gemini AI")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', type=Path, help='Config YAML file (default: ~/.gemini-batch/config.yaml)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')
    commands = parser.add_subparsers(dest='command', metavar='COMMAND')

    # config
    config_cmd = commands.add_parser('config', help='Configuration management')
    config_sub = config_cmd.add_subparsers(dest='action', metavar='ACTION')
    config_sub.add_parser('list', help='List current configuration')
    set_key = config_sub.add_parser('set-key', help='Set API key')
    set_key.add_argument('api_key')
    set_model = config_sub.add_parser('set-model', help='Set model')
    set_model.add_argument('model')
    config_sub.add_parser('reset', help='Reset settings to defaults')

    # job
    job_cmd = commands.add_parser('job', help='Job management')
    job_sub = job_cmd.add_subparsers(dest='action', metavar='ACTION')
    job_sub.required = True

    job_list = job_sub.add_parser('list', help='List jobs')
    job_list.add_argument('--limit', type=int, default=20, help='Number of jobs to display')

    submit = job_sub.add_parser('submit', help='Submit JSONL files or directories')
    submit.add_argument('inputs', nargs='*', help='Input files or directories')
    submit.add_argument('--output', '-o', type=Path, help='Output directory for results')
    submit.add_argument('--max-concurrent', type=int, help='Maximum concurrent jobs')
    submit.add_argument('--check-interval', type=float, help='Initial status check interval in seconds')
    submit.add_argument('--poll-timeout', type=float, help='Give up on a job after this many seconds')
    submit.add_argument('--no-wait', action='store_true', help='Submit and exit without waiting for results')

    for name, help_text in (('get', 'Get job details'), ('cancel', 'Cancel job')):
        sub = job_sub.add_parser(name, help=help_text)
        sub.add_argument('job_id')

    download = job_sub.add_parser('download', help='Download job results')
    download.add_argument('job_id')
    download.add_argument('--output', '-o', type=Path, help='Output directory for results')

    # file
    file_cmd = commands.add_parser('file', help='File management')
    file_sub = file_cmd.add_subparsers(dest='action', metavar='ACTION')
    file_sub.required = True
    file_list = file_sub.add_parser('list', help='List files')
    file_list.add_argument('--limit', type=int, default=10, help='Number of files to display')
    file_get = file_sub.add_parser('get', help='Get file details')
    file_get.add_argument('name')
    create = file_sub.add_parser('create', help='Create a batch input JSONL file')
    create.add_argument('--prompt', required=True, help='Prompt text or path to a prompt file')
    create.add_argument('--input', required=True, help='Glob pattern or path/to/file.json:field')
    create.add_argument('--output', required=True, type=Path, help='Output JSONL file')
    create.add_argument('--model', help='Model name recorded in requests')

    return parser


def handle_config(args, loader: ConfigLoader) -> int:
    if args.action == 'set-key':
        loader.update({'api_key': args.api_key})
        logger.info("✅ Gemini API key set successfully")
        return 0

    if args.action == 'set-model':
        loader.update({'model': args.model})
        logger.info(f"✅ Gemini model set to: {args.model}")
        return 0

    if args.action == 'reset':
        loader.reset()
        logger.warning("Configuration reset to defaults")
        return 0

    config = loader.load()
    print(f"Config file: {loader.config_path}")
    print(f"API Key: {mask_secret(config.api_key)}")
    print(f"Model: {config.model}")
    print(f"Max Concurrent Jobs: {config.max_concurrent_jobs}")
    print(f"Check Interval: {config.check_interval:g} seconds (max {config.max_check_interval:g})")
    print(f"Poll Timeout: {f'{config.poll_timeout:g} seconds' if config.poll_timeout else 'none'}")
    return 0


def handle_job(args, loader: ConfigLoader) -> int:
    overrides = {}
    if args.action == 'submit':
        if not args.inputs:
            logger.error("Please provide at least one input file or directory")
            print("\nExample:")
            print("  gemini-batch job submit sample.jsonl")
            print("  gemini-batch job submit input1.jsonl input2.jsonl --output ./results")
            return 1
        overrides = {
            'max_concurrent_jobs': args.max_concurrent,
            'check_interval': args.check_interval,
            'poll_timeout': args.poll_timeout,
        }

    config = loader.load(overrides=overrides)
    orchestrator = create_orchestrator_from_config(config)
    try:
        if args.action == 'submit':
            return _submit(orchestrator, config, args)
        if args.action == 'get':
            return _show_job(asyncio.run(orchestrator.get_job(args.job_id)), args.job_id)
        if args.action == 'cancel':
            if asyncio.run(orchestrator.cancel_job(args.job_id)):
                logger.info(f"✅ Job {args.job_id} cancelled successfully")
                return 0
            logger.error(f"Failed to cancel job {args.job_id}")
            return 1
        if args.action == 'download':
            output_dir = args.output or config.output_dir
            result = asyncio.run(orchestrator.download_job(args.job_id, output_dir))
            if result.success:
                logger.info(f"✅ Results saved to: {result.output_file_path}")
                return 0
            logger.error(f"Failed to download results of {args.job_id}: {result.error}")
            return 1

        jobs = asyncio.run(orchestrator.list_jobs(args.limit))
        if not jobs:
            logger.warning("No jobs found")
            return 0
        print(format_table(
            ["Job Name", "Display Name", "Status", "Created", "Output"],
            [_job_row(job) for job in jobs],
        ))
        return 0
    finally:
        orchestrator.close()


def _submit(orchestrator: BatchOrchestrator, config: BatchConfig, args) -> int:
    inputs = [Path(p).resolve() for p in args.inputs]

    if args.no_wait:
        files = orchestrator.expand_inputs(inputs)
        failed = 0
        for path in files:
            try:
                job = asyncio.run(orchestrator.submit_job(path))
                print(f"{path}\t{job.id}")
            except DomainException as e:
                logger.error(f"Failed to submit {path}: {e}")
                failed += 1
        return 1 if failed else 0

    output_dir = (args.output or config.output_dir).resolve()
    results = asyncio.run(orchestrator.process_inputs(inputs, output_dir, config.max_concurrent_jobs))

    successful = sum(1 for r in results if r.success)
    failed = len(results) - successful

    logger.info("=" * 60)
    logger.info("Processing completed!")
    logger.info(f"Total jobs: {len(results)}")
    logger.info(f"Successful: {successful}")
    if failed:
        logger.warning(f"Failed: {failed}")
        for result in results:
            if not result.success:
                logger.warning(f"  - {result.job_id}: {result.error or 'failed'}")
    if successful:
        logger.info(f"Results saved to: {output_dir}")
    for line in orchestrator.metrics.format_summary():
        logger.debug(line)
    logger.info("=" * 60)
    return 1 if failed else 0


def _job_row(job: Job) -> List[object]:
    return [
        job.id,
        job.display_name,
        job.status.value,
        job.created_at.strftime('%Y-%m-%d %H:%M') if job.created_at else None,
        job.output_ref,
    ]


def _show_job(job: Optional[Job], job_id: str) -> int:
    if job is None:
        logger.error(f"Job not found: {job_id}")
        return 1
    print(f"Name: {job.id}")
    print(f"Display Name: {job.display_name or '-'}")
    print(f"Status: {job.status.value}")
    print(f"Model: {job.model or '-'}")
    print(f"Input: {job.input_ref or '-'}")
    print(f"Output: {job.output_ref or '-'}")
    return 0


def handle_file(args, loader: ConfigLoader) -> int:
    config = loader.load()

    if args.action == 'create':
        builder = JsonlRequestBuilder(model=args.model or config.model)
        count = builder.build(args.prompt, args.input, args.output)
        logger.info(f"✅ Successfully created JSONL file with {count} requests: {args.output}")
        return 0

    orchestrator = create_orchestrator_from_config(config)
    try:
        if args.action == 'get':
            remote = asyncio.run(orchestrator.get_file(args.name))
            if remote is None:
                logger.error(f"File not found: {args.name}")
                logger.info("Use 'gemini-batch file list' to see available files")
                return 1
            _show_file(remote)
            return 0

        files = asyncio.run(orchestrator.list_files(args.limit))
        if not files:
            logger.warning("No files found")
            return 0
        print(format_table(
            ["File Name", "Display Name", "Size", "MIME Type", "Created"],
            [[f.name, f.display_name, format_bytes(f.size_bytes), f.mime_type, f.created_at] for f in files],
        ))
        return 0
    finally:
        orchestrator.close()


def _show_file(remote: RemoteFile) -> None:
    print(f"Name: {remote.name}")
    print(f"Display Name: {remote.display_name or '-'}")
    print(f"Size: {format_bytes(remote.size_bytes)}")
    print(f"MIME Type: {remote.mime_type or '-'}")
    print(f"Created: {remote.created_at or '-'}")
    print(f"State: {remote.state or '-'}")
    if remote.uri:
        print(f"URI: {remote.uri}")


HANDLERS = {
    'config': handle_config,
    'job': handle_job,
    'file': handle_file,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger(ROOT_LOGGER, level=logging.DEBUG if args.verbose else logging.INFO)

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args, ConfigLoader(config_path=args.config))
    except DomainException as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == '__main__':
    sys.exit(main())
