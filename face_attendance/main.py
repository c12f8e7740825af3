"""
Face Attendance - Main Entry Point

Serves the HTTP API and, with --scan, runs the camera check-in loop.
"""

import os
import sys
import argparse
import dataclasses
import threading
from pathlib import Path
from .config import Config, load_config
from .errors import AttendanceError
from .extractor import initialize_extractor
from .service import AttendanceService
from .storage import create_gateway
from .logging_config import setup_logging, get_logger

logger = get_logger(__name__)


def _load_local_env(env_path: Path = Path('.env')) -> None:
    """Load environment variables from a .env file if present."""
    if not env_path.exists():
        return

    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        os.environ.setdefault(key.strip(), value.strip())


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Face Attendance - Face Recognition Check-in'
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        help='Directory for identities.json/events.json (or set DATA_DIR)'
    )

    parser.add_argument(
        '--storage',
        choices=['file', 'http'],
        help='Persistence backend (or set STORAGE_BACKEND)'
    )

    parser.add_argument(
        '--backend-url',
        type=str,
        help='Backend API URL for --storage http (or set BACKEND_URL)'
    )

    parser.add_argument(
        '--camera-source',
        type=str,
        help='Camera index or stream URL (or set CAMERA_SOURCE)'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='HTTP API port (or set API_PORT)'
    )

    parser.add_argument(
        '--scan',
        action='store_true',
        help='Run the camera check-in loop alongside the API'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return config with command line values taking precedence over the environment."""
    overrides = {
        'data_dir': args.data_dir,
        'storage_backend': args.storage,
        'backend_url': args.backend_url,
        'camera_source': args.camera_source,
        'api_port': args.port,
    }
    changes = {k: v for k, v in overrides.items() if v is not None}
    if args.debug:
        changes['debug_mode'] = True
    return dataclasses.replace(config, **changes)


def start_api_server(service: AttendanceService, config: Config) -> None:
    """Run the Flask HTTP API (blocking)."""
    from .app import create_app

    logger.info(f'Starting HTTP API on port {config.api_port}...')
    app = create_app(service, config)
    app.run(
        host='0.0.0.0',
        port=config.api_port,
        threaded=True,
        debug=False,
        use_reloader=False
    )


def main(argv=None) -> None:
    """Main entry point."""
    _load_local_env()
    args = parse_args(argv)
    config = apply_overrides(load_config(), args)

    setup_logging(config.device_id, config.debug_mode)

    logger.info('=' * 60)
    logger.info('Face Attendance')
    logger.info('=' * 60)
    logger.info(f'Storage: {config.storage_backend}')
    logger.info(f'Match threshold: {config.match_threshold}')
    logger.info(f'Dedup window: {config.dedup_window_seconds:.0f}s')
    logger.info('=' * 60)

    try:
        service = AttendanceService.from_config(
            config, initialize_extractor(config), create_gateway(config)
        )
        service.load()

        if args.scan:
            from .video_loop import run as run_video_loop

            api_thread = threading.Thread(
                target=start_api_server, args=(service, config), daemon=True
            )
            api_thread.start()
            run_video_loop(service, config)
        else:
            start_api_server(service, config)

    except KeyboardInterrupt:
        logger.info('Received keyboard interrupt, shutting down...')
        sys.exit(0)
    except (AttendanceError, RuntimeError) as e:
        logger.error(f'Fatal error: {e}', exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
