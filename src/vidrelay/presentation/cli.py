"""CLI interface for the upload pipeline."""
import sys
import json
import logging
import argparse
from pathlib import Path

from vidrelay import __version__
from vidrelay.domain.models import REPORT_REASONS, ReportRequest, VideoDescriptor
from vidrelay.domain.exceptions import DomainException
from vidrelay.infrastructure.config import ConfigLoader
from vidrelay.infrastructure.media import LocalVideoFile
from vidrelay.infrastructure.transcoding import PassThroughCompressor
from vidrelay.application.factories import build_services
from vidrelay.application.orchestrator import describe_failure
from vidrelay.shared.logging import setup_logger, get_logger


def _print_progress(percent: float, message: str) -> None:
    end = '\n' if percent >= 100 else ''
    print(f"\r[{percent:5.1f}%] {message:<40}", end=end, file=sys.stderr, flush=True)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_upload(services, args) -> int:
    logger = get_logger(__name__)

    descriptor = None
    if args.width and args.height:
        descriptor = VideoDescriptor(width=args.width, height=args.height, fps=args.fps or 0.0)

    source = LocalVideoFile(args.file, mime_type=args.mime_type, descriptor=descriptor)
    if not source.path.is_file():
        logger.error(f"File not found: {source.path}")
        return 1

    outcome = services.orchestrator.upload(
        source,
        uploader_id=args.uploader,
        on_progress=None if args.quiet else _print_progress
    )

    if not outcome.success:
        logger.error(f"❌ {outcome.message}")
        if outcome.retryable:
            logger.info("This failure is temporary; running the same upload again may succeed.")
        return 1

    result = outcome.result
    logger.info("✅ Upload completed successfully!")
    if outcome.compression is not None and outcome.compression.passthrough:
        logger.info(f"Uploaded without compression ({outcome.compression.reason})")
    logger.info(f"Release: {result.release_id}")
    logger.info("📥 Download URL:")
    logger.info(f"   {result.asset_url}")

    if args.verbose:
        logger.debug(services.metrics.format_summary())

    _print_json({
        'release_id': result.release_id,
        'asset_id': result.asset_id,
        'asset_url': result.asset_url,
        'release_url': result.release_url,
        'file_name': result.file_name,
        'metadata': outcome.metadata.to_dict() if outcome.metadata else None,
    })
    return 0


def cmd_info(services, args) -> int:
    _print_json(services.content_host.get_container_info(args.container_id))
    return 0


def cmd_recent(services, args) -> int:
    _print_json(services.content_host.list_recent(args.limit))
    return 0


def cmd_delete(services, args) -> int:
    services.content_host.delete_container(args.container_id)
    get_logger(__name__).info(f"Deleted container {args.container_id}")
    return 0


def cmd_report(services, args) -> int:
    request = ReportRequest(
        file_url=args.file_url,
        release_id=args.release_id,
        reason=args.reason,
        additional_info=args.info or '',
    )
    receipt = services.report_client.submit_report(request)
    _print_json({'report_id': receipt.report_id, 'timestamp': receipt.timestamp})
    return 0


COMMANDS = {
    'upload': cmd_upload,
    'info': cmd_info,
    'recent': cmd_recent,
    'delete': cmd_delete,
    'report': cmd_report,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='vidrelay', description="Compress and upload videos")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', type=Path, help='Config YAML file (default: ./vidrelay.yaml)')
    parser.add_argument('--env-file', type=Path, help='.env file to load')
    parser.add_argument('--api-base', help='Function layer base URL')
    parser.add_argument('--compressor', choices=['auto', 'ffmpeg', 'passthrough'], help='Compression backend')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')

    sub = parser.add_subparsers(dest='command', required=True)

    upload = sub.add_parser('upload', help='Compress and upload a video')
    upload.add_argument('file', type=Path, help='Video file')
    upload.add_argument('--uploader', default='anonymous', help='Uploader id stored in metadata')
    upload.add_argument('--mime-type', help='Override the detected MIME type')
    upload.add_argument('--width', type=int, help='Declared width (skips probing with --height)')
    upload.add_argument('--height', type=int, help='Declared height')
    upload.add_argument('--fps', type=float, help='Declared frame rate')
    upload.add_argument('--quiet', '-q', action='store_true', help='No progress output')

    info = sub.add_parser('info', help='Show a container')
    info.add_argument('container_id')

    recent = sub.add_parser('recent', help='List recent uploads')
    recent.add_argument('--limit', type=int, default=10)

    delete = sub.add_parser('delete', help='Delete a container')
    delete.add_argument('container_id')

    report = sub.add_parser('report', help='Report an uploaded file')
    report.add_argument('--file-url', required=True)
    report.add_argument('--release-id', required=True)
    report.add_argument('--reason', required=True, help=f"One of: {', '.join(REPORT_REASONS)}")
    report.add_argument('--info', help='Additional information')

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger('vidrelay', level=log_level, propagate=False)
    logger = get_logger(__name__)

    services = None
    try:
        config = ConfigLoader(config_path=args.config, env_file=args.env_file).load(overrides={
            'api_base_url': args.api_base,
            'compressor': args.compressor,
        })
        logger.debug(f"Function layer: {config.api_base_url}")

        # Only uploads need a transcoder.
        compressor = None if args.command == 'upload' else PassThroughCompressor()
        services = build_services(config, compressor=compressor)
        return COMMANDS[args.command](services, args)

    except DomainException as e:
        logger.error(describe_failure(e))
        logger.debug(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1
    finally:
        if services is not None:
            services.close()


if __name__ == '__main__':
    sys.exit(main())
