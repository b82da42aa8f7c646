"""
Main entry point for setlist-sync
"""

import asyncio
import signal
from dataclasses import dataclass
from typing import Optional

import structlog

from setlist_sync.catalog import MarkerCatalog, RegionCatalog, SetlistCatalog
from setlist_sync.config import Settings, settings
from setlist_sync.events import EventBus
from setlist_sync.midi import MidiActionDispatcher, MidiInputBridge, NoteDebouncer
from setlist_sync.playback import NavigationFacade, ProjectTracker, TransitionEngine, TransitionTiming
from setlist_sync.storage import JsonFileSetlistStore, RedisSetlistStore, SetlistStore
from setlist_sync.tempo import BpmEstimator, CountInCalculator
from setlist_sync.transport import PlaybackStateStore, ReaperWebClient, TransportStateReconciler
from setlist_sync.utils.logging import setup_logging

logger = structlog.get_logger()


@dataclass
class Application:
    """Every long-lived component, wired together."""
    events: EventBus
    client: ReaperWebClient
    store: PlaybackStateStore
    regions: RegionCatalog
    markers: MarkerCatalog
    setlists: SetlistCatalog
    estimator: BpmEstimator
    reconciler: TransportStateReconciler
    engine: TransitionEngine
    navigation: NavigationFacade
    project: ProjectTracker
    midi: Optional[MidiInputBridge] = None

    async def start(self):
        try:
            await self.project.refresh()
        except Exception as e:
            logger.warning("REAPER not reachable at startup, will keep polling", error=str(e))
        self.reconciler.start()
        self.engine.start_watching()
        self.project.start()
        if self.midi is not None:
            self.midi.start()

    async def stop(self):
        if self.midi is not None:
            self.midi.stop()
        await self.project.stop()
        await self.engine.stop_watching()
        await self.reconciler.stop()
        self.project.close()
        self.events.clear()
        await self.client.close()


def build_setlist_store(config: Settings) -> SetlistStore:
    if config.setlist_backend == "redis":
        from setlist_sync.storage import connection

        return RedisSetlistStore(connection.create_redis_connection(config), config.redis_key_prefix)
    return JsonFileSetlistStore(config.storage_base_path)


def build_application(config: Settings, client: Optional[ReaperWebClient] = None) -> Application:
    """
    Wire all components from settings.

    Args:
        config: Application settings
        client: REAPER client to use (built from settings when None)

    Returns:
        Application ready to start
    """
    events = EventBus()
    client = client or ReaperWebClient(config.reaper_base_url, timeout=config.reaper_timeout)
    store = PlaybackStateStore(events)
    regions = RegionCatalog(events)
    markers = MarkerCatalog(events)
    setlists = SetlistCatalog(events)
    estimator = BpmEstimator()

    async def current_bpm():
        return estimator.estimate(store.state.bpm)

    count_in = CountInCalculator(client.get_time_signature, current_bpm)

    reconciler = TransportStateReconciler(
        client,
        store,
        regions,
        estimator,
        events=events,
        interval=config.transport_poll_interval,
        failure_threshold=config.degraded_failure_threshold,
        default_bpm=config.default_bpm,
    )
    project = ProjectTracker(
        client,
        store,
        regions,
        markers,
        setlists,
        build_setlist_store(config),
        events,
        interval=config.project_poll_interval,
    )
    # Neither poll may rewrite regions or position mid-seek
    engine = TransitionEngine(
        client,
        store,
        regions,
        markers,
        setlists,
        estimator,
        count_in,
        events=events,
        timing=TransitionTiming.from_settings(config),
        companion_tasks=[reconciler.task, project.task],
    )
    navigation = NavigationFacade(client, store, regions, markers, setlists, engine, reconciler=reconciler)

    midi = None
    if config.midi_enabled and config.midi_input_ports:
        dispatcher = MidiActionDispatcher(
            navigation,
            config.midi_note_mapping,
            NoteDebouncer(config.midi_debounce_ms),
            channel=config.midi_channel,
        )
        midi = MidiInputBridge(dispatcher, config.midi_input_ports)

    return Application(
        events=events,
        client=client,
        store=store,
        regions=regions,
        markers=markers,
        setlists=setlists,
        estimator=estimator,
        reconciler=reconciler,
        engine=engine,
        navigation=navigation,
        project=project,
        midi=midi,
    )


async def run(config: Settings):
    """Run until SIGINT/SIGTERM."""
    app = build_application(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    await app.start()
    logger.info("setlist-sync running", reaper_url=config.reaper_base_url)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await app.stop()


def main():
    """Start the sync service"""
    setup_logging(settings.log_level, settings.log_file or None)

    logger.info(
        "Starting setlist-sync",
        reaper_url=settings.reaper_base_url,
        setlist_backend=settings.setlist_backend,
        midi_ports=settings.midi_input_ports if settings.midi_enabled else [],
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
