"""
Entry point for the realtime arbitrage client.

Usage:
    python -m arbclient
    arbclient  # if installed via pip
"""

import asyncio
import sys


# Try to use uvloop for better performance
try:
    import uvloop

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from pydantic import ValidationError

    from arbclient import __version__
    from arbclient.api.client import ApiClientError
    from arbclient.config.settings import get_settings
    from arbclient.core.session import RealtimeSession
    from arbclient.telemetry.logger import setup_logging

    # Print banner
    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     REALTIME ARBITRAGE CLIENT v{__version__:<25}      ║
║                                                               ║
║     Live cross-exchange spread monitor                        ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    # Load settings
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure your environment or .env file has valid values, e.g.:")
        print("  BACKEND_URL=http://localhost:5000")
        print("  EMAIL=you@example.com")
        print("  PASSWORD=your_password")
        return 1

    uvloop_enabled = UVLOOP_AVAILABLE and settings.use_uvloop

    # Print configuration summary
    print("Configuration:")
    print(f"  Backend:        {settings.backend_url}")
    print(f"  Push channel:   {settings.ws_url}")
    print(f"  Credentials:    {settings.credential_file}")
    print(f"  Auto login:     {'Yes' if settings.has_login else 'No'}")
    print(f"  Emphasis:       {settings.emphasis_window_ms} ms")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    queue_logging = setup_logging(level=settings.log_level, log_file=settings.log_file)

    # Run the session
    async def run_session() -> int:
        session = RealtimeSession(settings)

        try:
            await session.run()
            return 0

        except ApiClientError as e:
            print(f"\nBackend error: {e}")
            return 1

        finally:
            await session.shutdown()

    try:
        if uvloop_enabled:
            return uvloop.run(run_session())
        return asyncio.run(run_session())

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0

    finally:
        queue_logging.stop()


if __name__ == "__main__":
    sys.exit(main())
