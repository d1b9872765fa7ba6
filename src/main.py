import logging
import signal
import sys
from typing import Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    SecretConfig,
    load_app_config,
    load_secret_config,
    resolve_config_path,
)
from notifications import (
    MODE_LOCAL,
    MODE_PUSH,
    LocalNotificationChannel,
    NotificationDispatcher,
    NotificationPreferences,
    PushNotificationChannel,
    PushSubscriptionRegistry,
    VapidCredentials,
)
from pomodoro import TaskTimer
from runtime import RuntimeBootstrap, RuntimeEngine
from server import (
    ApiServer,
    ApiServerConfig,
    ServerConfigurationError,
    TaskApiRoutes,
    UIServer,
    UIServerConfig,
)
from session import (
    JsonFileSessionCache,
    MemorySessionCache,
    SessionCacheLike,
    SessionPersistenceBridge,
)
from task_queue import LocalCacheReconciler, TaskStoreAdapter
from tasks import HttpTaskStore, InMemoryTaskStore, TaskStoreLike


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("runtime")


def setup_signal_handlers(engine: RuntimeEngine, logger: logging.Logger) -> None:
    """Stop the runtime loop gracefully on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        logger.info("Signal %s received, stopping.", signal.Signals(signum).name)
        engine.request_stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def build_session_cache(app_config: AppConfig, logger: logging.Logger) -> SessionCacheLike:
    cache_file = app_config.session.cache_file
    if not cache_file:
        logger.info("Session cache kept in memory; state will not survive a restart")
        return MemorySessionCache()
    logger.info("Session cache file: %s", cache_file)
    return JsonFileSessionCache(cache_file, logger=logging.getLogger("session.cache"))


def build_task_store(app_config: AppConfig, logger: logging.Logger) -> TaskStoreLike:
    settings = app_config.tasks
    if settings.store_url:
        logger.info("Using remote task API at %s", settings.store_url)
        return HttpTaskStore(
            settings.store_url,
            timeout_seconds=settings.request_timeout_seconds,
            logger=logging.getLogger("tasks.http"),
        )
    return InMemoryTaskStore(logger=logging.getLogger("tasks.store"))


def build_vapid_credentials(
    app_config: AppConfig,
    secrets: SecretConfig,
    logger: logging.Logger,
) -> Optional[VapidCredentials]:
    settings = app_config.notifications
    if not (settings.vapid_public_key and settings.vapid_subject and secrets.vapid_private_key):
        logger.info(
            "Push notifications unavailable; set notifications.vapid_public_key, "
            "notifications.vapid_subject and VAPID_PRIVATE_KEY to enable them"
        )
        return None
    return VapidCredentials(
        public_key=settings.vapid_public_key,
        private_key=secrets.vapid_private_key,
        subject=settings.vapid_subject,
    )


def build_dispatcher(
    app_config: AppConfig,
    ui_server: Optional[UIServer],
    subscriptions: PushSubscriptionRegistry,
    vapid: Optional[VapidCredentials],
) -> NotificationDispatcher:
    settings = app_config.notifications
    notifications_logger = logging.getLogger("notifications")
    return NotificationDispatcher(
        {
            MODE_LOCAL: LocalNotificationChannel(ui_server),
            MODE_PUSH: PushNotificationChannel(
                subscriptions,
                vapid,
                timeout_seconds=settings.push_timeout_seconds,
                logger=notifications_logger,
            ),
        },
        preferences=NotificationPreferences(
            enabled=settings.enabled,
            mode=settings.mode,
        ),
        logger=notifications_logger,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Run the task timer with its websocket UI and REST API."""
    logger = setup_logging(level=logging.INFO)
    args = sys.argv[1:] if argv is None else argv

    try:
        config_path = resolve_config_path(args[0] if args else None)
        app_config = load_app_config(str(config_path))
        secrets = load_secret_config()
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
        api_server_config = ApiServerConfig.from_settings(app_config.api_server)
    except ServerConfigurationError as error:
        logger.error("Server configuration error: %s", error)
        return 1

    session_cache = build_session_cache(app_config, logger)
    store = build_task_store(app_config, logger)
    reconciler = LocalCacheReconciler(
        cache=session_cache,
        logger=logging.getLogger("task_queue"),
    )
    adapter = TaskStoreAdapter(
        store,
        reconciler,
        auto_break=app_config.tasks.auto_break,
        break_duration_minutes=app_config.tasks.break_duration_minutes,
        default_duration_minutes=app_config.tasks.default_duration_minutes,
        store_pairs_breaks=bool(app_config.tasks.store_url),
        logger=logging.getLogger("tasks"),
    )

    ui_server: Optional[UIServer] = None
    if ui_server_config.enabled:
        ui_server = UIServer(config=ui_server_config, logger=logging.getLogger("ui_server"))

    subscriptions = PushSubscriptionRegistry(logger=logging.getLogger("notifications"))
    vapid = build_vapid_credentials(app_config, secrets, logger)
    dispatcher = build_dispatcher(app_config, ui_server, subscriptions, vapid)

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logger,
            timer=TaskTimer(logger=logging.getLogger("pomodoro")),
            adapter=adapter,
            reconciler=reconciler,
            session=SessionPersistenceBridge(
                session_cache,
                stale_after_seconds=app_config.session.stale_after_seconds,
                logger=logging.getLogger("session"),
            ),
            dispatcher=dispatcher,
            ui_server=ui_server,
            tick_interval_seconds=app_config.timer.tick_interval_seconds,
            task_refresh_seconds=app_config.timer.task_refresh_seconds,
        )
    )

    api_server: Optional[ApiServer] = None
    try:
        if ui_server is not None:
            ui_server.set_command_sink(engine.submit)
            logger.info("Starting UI server...")
            ui_server.start(timeout_seconds=5.0)

        if api_server_config.enabled:
            if app_config.tasks.store_url:
                logger.warning(
                    "API server serves the in-process store only; disabled while "
                    "tasks.store_url is set."
                )
            else:
                api_server = ApiServer(
                    api_server_config,
                    TaskApiRoutes(
                        store,
                        subscriptions,
                        dispatcher=dispatcher,
                        auto_break=app_config.tasks.auto_break,
                        break_duration_minutes=app_config.tasks.break_duration_minutes,
                        default_duration_minutes=app_config.tasks.default_duration_minutes,
                        vapid_public_key=vapid.public_key if vapid else "",
                        on_change=engine.request_refresh,
                        logger=logging.getLogger("api_server"),
                    ),
                    logger=logging.getLogger("api_server"),
                )
                api_server.start()
    except RuntimeError as error:
        logger.error("Server startup failed: %s", error)
        _stop_servers(logger, ui_server, api_server)
        dispatcher.shutdown()
        return 1

    setup_signal_handlers(engine, logger)
    try:
        return engine.run()
    finally:
        _stop_servers(logger, ui_server, api_server)
        close = getattr(store, "close", None)
        if close is not None:
            close()


def _stop_servers(
    logger: logging.Logger,
    ui_server: Optional[UIServer],
    api_server: Optional[ApiServer],
) -> None:
    if api_server is not None:
        logger.info("Stopping API server...")
        try:
            api_server.stop(timeout_seconds=5.0)
        except Exception as error:
            logger.error("Error stopping API server: %s", error, exc_info=True)

    if ui_server is not None:
        logger.info("Stopping UI server...")
        try:
            ui_server.stop(timeout_seconds=5.0)
        except Exception as error:
            logger.error("Error stopping UI server: %s", error, exc_info=True)


if __name__ == "__main__":
    raise SystemExit(main())
