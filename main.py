import logging, sys

from app import KioskDisplay
import config, web_remote


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(config.LOG_FILE, encoding="utf-8"),
        ],
    )


def main():
    setup_logging(logging.DEBUG if "--debug" in sys.argv else logging.INFO)
    kiosk = KioskDisplay()
    web_remote.start(kiosk)
    kiosk.run()

if __name__ == "__main__":
    main()
