import signal

from assetbridge.app import create_app

app = create_app()


def setup_signal_handlers():
    """Set up signal handlers for graceful shutdown."""

    def signal_handler(signum, frame):
        app.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        raise KeyboardInterrupt()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


if __name__ == "__main__":
    setup_signal_handlers()
    app.logger.info("Starting asset pipeline demo")
    try:
        app.run(host="0.0.0.0", port=5000, debug=app.config["DEBUG"])
    except KeyboardInterrupt:
        app.logger.info("Shutdown signal received, stopping application")
    finally:
        app.logger.info("Application stopped")
