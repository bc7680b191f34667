#!/usr/bin/env python3
"""Main entry point for the AI text-game player."""
import logging
import sys
from pathlib import Path

from aigamer_agent import GameLoopCoordinator, SessionLog
from aigamer_agent.coordinator import CoordinatorError
from aigamer_os.config import load_configs


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)

    Returns:
        Root logger instance
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger()


def main() -> int:
    """Main entry point."""
    logger = setup_logging(level=logging.INFO)

    logger.info("=" * 70)
    logger.info("AI Gamer - Warsim: The Realm of Aslona")
    logger.info("=" * 70)

    config_path = Path("config.yaml")
    if not config_path.exists():
        logger.warning("config.yaml not found; using defaults")

    try:
        config = load_configs(config_path)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    provider = config.ai.provider
    try:
        provider_settings = config.ai.for_provider()
    except KeyError as exc:
        logger.error("Invalid AI provider: %s", exc)
        return 1

    logger.info("Configuration loaded successfully")
    logger.info("  Provider: %s", provider)
    logger.info("  Model: %s / vision: %s", provider_settings.model, provider_settings.vision_model)
    logger.info("  Logs dir: %s", config.agent.logs_dir)

    try:
        session_name = input("Enter a name for this session (optional): ").strip()
    except EOFError:
        session_name = ""

    session_log = SessionLog(config.agent.logs_dir, session_name or None)
    logger.info("Session log: %s", session_log.path)
    session_log.log_system(f"Session started with provider {provider}")

    try:
        coordinator = GameLoopCoordinator(config, session_log=session_log, logger=logger)
    except CoordinatorError as exc:
        logger.error("Startup failed: %s", exc)
        session_log.log_error(f"Startup failed: {exc}")
        session_log.close()
        return 1

    try:
        input("Make sure the game window is visible, then press Enter to start...")
    except EOFError:
        pass

    try:
        logger.info("Starting game loop...")
        coordinator.run()
        logger.info("Game loop terminated normally")
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as exc:
        logger.exception("Fatal error: %s", exc)
        session_log.log_error(f"Fatal error: {exc}")
        return 1
    finally:
        session_log.log_system("Session ended")
        session_log.close()


if __name__ == "__main__":
    sys.exit(main())
