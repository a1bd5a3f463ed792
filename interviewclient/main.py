"""Main application entry point for the interview client."""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Optional

import click

from .api.client import InterviewApiClient
from .audio.encoding import AudioEncoder
from .audio.recorder import AudioRecorder
from .config import InterviewClientConfig, get_config, reload_config
from .errors import InterviewClientError
from .publisher import EventPublisher
from .services.session_controller import SessionController
from .ui.interview_screen import InterviewScreen

logger = logging.getLogger(__name__)


def create_controller(config: Optional[InterviewClientConfig] = None, publisher: Optional[EventPublisher] = None,
                      api_url: Optional[str] = None) -> SessionController:
    """Wire the API client, recorder and controller from configuration.

    Uses the process-wide configuration when none is given.
    """
    config = config or get_config()
    api = InterviewApiClient(
        base_url=api_url or config.get_api_base_url(),
        token_provider=config.get_auth_token,
        timeout_seconds=config.get('api.timeout_seconds'),
    )
    recorder = AudioRecorder(
        sample_rate=config.get('audio.sample_rate', 16000),
        chunk_size=config.get('audio.chunk_size', 1024),
        channels=config.get('audio.channels', 1),
        mime_candidates=config.get_mime_candidates(),
        encoder=AudioEncoder(config.get('audio.ffmpeg_path')),
        publisher=publisher,
    )
    return SessionController(api, recorder=recorder, publisher=publisher)


async def run_interview(candidate_name: Optional[str] = None, cv_text: Optional[str] = None,
                        cv_file: Optional[Path] = None, api_url: Optional[str] = None,
                        config: Optional[InterviewClientConfig] = None) -> None:
    publisher = EventPublisher()
    controller = create_controller(config, publisher, api_url)
    screen = InterviewScreen(controller, publisher)
    try:
        await screen.run(candidate_name, cv_text=cv_text, cv_file=cv_file)
    finally:
        await controller.end_session()
        await controller.close()


def setup_logging(config: InterviewClientConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get_log_file_path()
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Interview client starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


@click.command(epilog="Commands: /record, /stop, /send, /cancel, /report, /restart, /quit")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="Path to configuration YAML file (defaults are used if omitted)")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
              help="Set logging level (overrides config)")
@click.option("--api-url", help="Interview service base URL (overrides config)")
@click.option("--name", "candidate_name", help="Candidate name sent when the interview starts")
@click.option("--cv", "cv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="CV file uploaded when the interview starts")
@click.option("--cv-as-text", is_flag=True,
              help="Send the CV file contents as text instead of uploading the file")
@click.version_option("0.1.0", prog_name="interviewclient")
def main(config_path: Optional[str], log_level: Optional[str], api_url: Optional[str],
         candidate_name: Optional[str], cv_path: Optional[Path], cv_as_text: bool) -> None:
    """Interview client - practice a structured interview by text or voice."""
    config = reload_config(config_path)
    setup_logging(config, log_level or config.get('logging.level', 'INFO'))

    cv_text = None
    cv_file = None
    if cv_path is not None:
        if cv_as_text:
            cv_text = cv_path.read_text(encoding='utf-8')
        else:
            cv_file = cv_path

    try:
        asyncio.run(run_interview(candidate_name, cv_text=cv_text, cv_file=cv_file, api_url=api_url))
    except KeyboardInterrupt:
        click.echo("\n👋 Goodbye!")
    except InterviewClientError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
