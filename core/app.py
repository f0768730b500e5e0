import asyncio
import os
import signal
import sys

from dotenv import find_dotenv, load_dotenv

# .env applies before any project logger reads GHOST_RUNTIME_LOG_FILE
load_dotenv(find_dotenv(usecwd=True))

from core.config_loader import ConfigLoader  # noqa: E402
from core.reload import ReloadController  # noqa: E402
from core.runtime import GhostRuntime  # noqa: E402
from runtime.version import as_string  # noqa: E402
from services.twitch.api.chat import ANONYMOUS_NICKNAME, TwitchChatClient  # noqa: E402
from shared.errors import ChannelLogError, ConfigError  # noqa: E402
from shared.logging.logger import get_logger  # noqa: E402

log = get_logger("core.app")


async def main(stop_event: asyncio.Event, reload_trigger: asyncio.Event) -> int:
    log.info(f"{as_string()} booting")

    # --------------------------------------------------
    # STARTUP CONFIG (FATAL ON FAILURE)
    # --------------------------------------------------
    loader = ConfigLoader()
    try:
        channels, handles = await loader.load()
    except (ConfigError, ChannelLogError) as e:
        log.error(f"Startup configuration failed: {e}")
        return 1

    # --------------------------------------------------
    # TRANSPORT
    # --------------------------------------------------
    client = TwitchChatClient(
        channels,
        nickname=os.getenv("GHOST_NICKNAME") or ANONYMOUS_NICKNAME,
        token=os.getenv("GHOST_OAUTH_TOKEN") or None,
    )

    controller = ReloadController(
        loader=loader,
        transport=client,
        channels=channels,
        handles=handles,
    )

    try:
        await client.connect()
        runtime = GhostRuntime(
            events=client.iter_events(),
            controller=controller,
            reload_trigger=reload_trigger,
            stop_event=stop_event,
        )
        await runtime.run()
    finally:
        # --------------------------------------------------
        # ORDERLY SHUTDOWN
        # --------------------------------------------------
        await client.close()
        await controller.handles.close()

    log.info(f"purple-ghost stopped after {runtime.events_handled} event(s)")
    return 0


# ----------------------------------------------------------------------
# SIGNAL HANDLING
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
    reload_trigger: asyncio.Event,
):
    """
    SIGHUP requests a reload; SIGINT / SIGTERM request shutdown.
    Uses signal.signal + asyncio.Event so the loop unwinds cleanly.
    """

    def _set_threadsafe(event: asyncio.Event):
        def _handler(signum, frame):
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                event.set()

        return _handler

    signal.signal(signal.SIGINT, _set_threadsafe(stop_event))
    signal.signal(signal.SIGTERM, _set_threadsafe(stop_event))

    sighup = getattr(signal, "SIGHUP", None)
    if sighup is None:
        log.warning("SIGHUP unavailable on this platform; live reload disabled")
        return
    signal.signal(sighup, _set_threadsafe(reload_trigger))


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    stop_event = asyncio.Event()
    reload_trigger = asyncio.Event()
    _install_signal_handlers(loop, stop_event, reload_trigger)

    exit_code = 0
    try:
        exit_code = loop.run_until_complete(main(stop_event, reload_trigger))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received; shutting down")

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())
        asyncio.set_event_loop(None)
        loop.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    run()
