"""
mediabatch - command-line front end

Collects a folder and per-mode parameters, starts one batch on the worker
thread, and drains the log/progress feed on a fixed interval until the
run ends.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__
from .banner import print_banner
from .batch import BatchReport, BatchRunner
from .channel import BatchProgress, LogChannel
from .config import Config, load_config, validate_config
from .errors import MediaBatchError, PreconditionError
from .jobs import JobParameters, OperationMode, parse_job_parameters
from .notifications import Notifier
from .worker import BatchWorker, RunState

logger = logging.getLogger("mediabatch")

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_FILE_FAILURES = 2


def setup_logging(config: Config, console: bool = False) -> None:
    """
    Configure logging based on config.

    The console normally shows the log channel, not log records; pass
    `console=True` to also stream records to stderr.
    """
    log_format = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers: List[logging.Handler] = []

    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )


class MediaBatchApp:
    """Wires the batch runner, worker and notifier to a polling console."""

    def __init__(self, config: Config):
        self.config = config
        self.channel = LogChannel()
        self.progress = BatchProgress()
        self.batch_runner = BatchRunner(config, channel=self.channel, progress=self.progress)

        self.notifier: Optional[Notifier] = None
        if config.webhook_url:
            self.notifier = Notifier(config.webhook_url)

        self.worker = BatchWorker(
            self.batch_runner,
            on_complete_callback=self._on_batch_complete,
        )

    def _on_batch_complete(self, report: BatchReport) -> None:
        if self.notifier:
            self.notifier.notify_batch_complete(report)

    def _drain(self) -> None:
        for line in self.channel.drain():
            print(line)

    def run(self, folder: Path, mode: OperationMode, params: JobParameters) -> int:
        """Run one batch to completion, printing the feed. Returns an exit status."""
        try:
            plan = self.worker.start(folder, mode, params)
        except PreconditionError as e:
            logger.error(f"Run rejected: {e}")
            print(f"Error: {e}", file=sys.stderr)
            if self.notifier:
                self.notifier.notify_batch_failed(folder, str(e))
            return EXIT_PRECONDITION

        print(f"Found {plan.total} file(s) to process")
        last_status = None

        while self.worker.is_running:
            self._drain()
            snapshot = self.progress.snapshot()
            status = f"[{snapshot.completed}/{snapshot.total}] {snapshot.status_text}"
            if status != last_status:
                print(status)
                last_status = status
            time.sleep(self.config.poll_interval)

        self.worker.wait()
        self._drain()

        if self.worker.state is RunState.CRASHED:
            print(f"Error: batch aborted: {self.worker.error}", file=sys.stderr)
            if self.notifier:
                self.notifier.notify_batch_failed(folder, str(self.worker.error))
            return EXIT_PRECONDITION

        report = self.worker.report
        print(self.progress.snapshot().status_text)
        if report is not None and report.failed:
            return EXIT_FILE_FAILURES
        return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediabatch",
        description="mediabatch - batch ffmpeg transforms for a folder of media files"
    )
    parser.add_argument("folder", type=Path, help="Folder containing the media files")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in OperationMode],
        default=OperationMode.COMPRESS.value,
        help="Operation to apply to every file (default: compress)"
    )
    parser.add_argument(
        "--args",
        dest="encoder_args",
        default=None,
        help="Encoder arguments passed to ffmpeg verbatim (default from DEFAULT_ENCODER_ARGS)"
    )
    parser.add_argument(
        "--regions",
        default="",
        help="Masked regions as x,y,w,h; join several with '&'"
    )
    parser.add_argument(
        "--window",
        default="",
        help="remove-trailer: mask the last region only in the final N seconds"
    )
    parser.add_argument("--head", default="", help="splice: seconds of original head to keep")
    parser.add_argument("--tail", default="", help="splice: seconds of original tail to keep")
    parser.add_argument("--no-head", action="store_true", help="splice: do not splice the head")
    parser.add_argument("--no-tail", action="store_true", help="splice: do not splice the tail")
    parser.add_argument(
        "--ok-dir",
        action="store_true",
        help="Write every output into the OK/ subfolder"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also print log records to stderr"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"mediabatch {__version__}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Load configuration
    config = load_config()

    # Override output placement from args
    if args.ok_dir:
        config.output_to_ok_dir = True

    # Setup logging
    setup_logging(config, console=args.verbose)

    # Validate configuration
    if not validate_config(config):
        return EXIT_PRECONDITION

    mode = OperationMode(args.mode)
    encoder_args = args.encoder_args
    if encoder_args is None:
        encoder_args = "" if mode is OperationMode.SPLICE_ADVANCED else config.default_encoder_args

    try:
        params = parse_job_parameters(
            mode,
            encoder_args=encoder_args,
            regions=args.regions,
            window=args.window,
            head=args.head,
            tail=args.tail,
            splice_head=not args.no_head,
            splice_tail=not args.no_tail,
        )
    except MediaBatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PRECONDITION

    print_banner(__version__)

    app = MediaBatchApp(config)
    return app.run(args.folder, mode, params)


if __name__ == "__main__":
    sys.exit(main())
