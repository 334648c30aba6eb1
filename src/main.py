"""
Main entry point for the hotel booking chat agent.

Runs a console chat for one phone number: each line typed is handled as an
inbound WhatsApp message, and replies are delivered through the configured
notifier (Twilio WhatsApp when credentials are set, the log otherwise).

Usage:
    python src/main.py --phone 254712345678
"""
import sys
import argparse

from loguru import logger

from config import get_settings
from error_handling.logging_config import configure_logging
from error_handling.exceptions import BookingSystemError
from agent.factory import create_booking_agent

EXIT_COMMANDS = {"quit", "exit"}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Hotel booking chat agent (console transport)")
    parser.add_argument(
        "--phone",
        default="254700000000",
        help="Phone number the console messages are sent from (default: 254700000000)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main entry point for the console chat.
    """
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)

    logger.info("=" * 80)
    logger.info("Hotel Booking Chat Agent")
    logger.info("=" * 80)

    try:
        with create_booking_agent(settings) as agent:
            logger.info(f"Chatting as {args.phone}. Type 'quit' to exit.")

            while True:
                try:
                    text = input("> ")
                except EOFError:
                    break

                if text.strip().lower() in EXIT_COMMANDS:
                    break

                result = agent.process(args.phone, text)
                if not result.ok:
                    logger.error(f"Message not processed: {result.error}")

        return 0

    except BookingSystemError as e:
        logger.error(f"Failed to start agent: {e.message}")
        logger.error("Please check DATABASE_URL and the Twilio settings in your .env file")
        return 2

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 130

    finally:
        logger.info("Application shutting down...")


if __name__ == "__main__":
    sys.exit(main())
