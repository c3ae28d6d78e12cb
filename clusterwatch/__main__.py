import asyncio
import signal
import sys

from .config import Config, ConfigurationError
from .delivery import DeliveryQueue
from .elastic import ClusterHealthMonitor, StatsCollector
from .monitoring_service import MonitoringService
from .notifications import (
    EmailChannel,
    MessageFormatter,
    NotificationDispatcher,
    SlackChannel,
    TelegramChannel,
)
from .rules import RuleEngine, RulesWatcher
from .transport import FailoverDispatcher, RequestExecutor
from .utils.logger import setup_logger


class GracefulExit(SystemExit):
    code = 0


def raise_graceful_exit(signum, frame):
    raise GracefulExit()


async def run_monitoring_loop(service: MonitoringService, interval: int, logger):
    logger.info(f"Starting monitoring loop with {interval}s interval")
    loop = asyncio.get_running_loop()

    while True:
        started = loop.time()
        try:
            await service.perform_collection_cycle()
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Error in monitoring loop: {e}", exc_info=True)

        # An overrunning cycle makes the next one start right away, never concurrently.
        delay = max(0.0, interval - (loop.time() - started))
        logger.info(f"Waiting {delay:.1f} seconds until next cycle...")
        await asyncio.sleep(delay)


async def main():
    try:
        config = Config()
    except ConfigurationError as e:
        print(f"Fatal configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    logger = setup_logger(name="clusterwatch", level=config.log_level, log_file=config.log_file)

    signal.signal(signal.SIGTERM, raise_graceful_exit)
    signal.signal(signal.SIGINT, raise_graceful_exit)

    logger.info("Starting Cluster Watch")
    logger.info(f"Collect interval: {config.collect_interval}s")
    for cluster in config.source_clusters:
        logger.info(f"Configured cluster {cluster.name}: {', '.join(cluster.hosts)}")

    executor = RequestExecutor(timeout=config.request_timeout)
    dispatcher = FailoverDispatcher(executor)

    formatter = MessageFormatter(locale=config.locale)
    notifier = NotificationDispatcher(
        channels={
            "slack": SlackChannel(dispatcher),
            "email": EmailChannel(formatter),
            "telegram": TelegramChannel(),
        },
        enabled=config.notification_channels,
        formatter=formatter,
        slack_defaults=config.slack_defaults,
        email_defaults=config.email_defaults,
        telegram_defaults=config.telegram_defaults,
    )

    delivery_queue = DeliveryQueue(
        dispatcher=dispatcher,
        hosts=config.destination_hosts,
        index_prefix=config.index_prefix,
        queue_size=config.delivery_queue_size,
        retry_delay=config.delivery_retry_delay,
        timezone=config.timezone,
    )

    health_monitor = ClusterHealthMonitor(
        clusters=config.source_clusters,
        notifier=notifier,
        notify_node_count=config.notify_on_node_count_change,
        notify_yellow=config.notify_on_cluster_yellow,
        notify_red=config.notify_on_cluster_red,
        notify_unavailable=config.notify_on_cluster_unavailable,
    )

    rule_engine = RuleEngine(config=config, dispatcher=dispatcher, notifier=notifier)
    watcher = RulesWatcher(
        directory=rule_engine.rules_dir,
        on_change=rule_engine.request_reload,
        interval=config.rules_watch_interval,
    )

    monitoring_service = MonitoringService(
        config=config,
        stats_collector=StatsCollector(dispatcher, delivery_queue),
        health_monitor=health_monitor,
        rule_engine=rule_engine,
    )

    exit_code = 0
    try:
        rule_engine.load()
        await watcher.start()
        await delivery_queue.start()
        await notifier.notify_service_started()

        await run_monitoring_loop(service=monitoring_service, interval=config.collect_interval, logger=logger)
    except (GracefulExit, KeyboardInterrupt):
        logger.info("Shutting down gracefully")
    except ConfigurationError as e:
        logger.critical(f"Fatal configuration error: {e}")
        exit_code = 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        exit_code = 1
    finally:
        await watcher.stop()
        await delivery_queue.stop()
        if exit_code == 0:
            await notifier.notify_service_stopped()
        await notifier.close()
        await executor.close()

    logger.info("Cluster Watch stopped")
    if exit_code:
        sys.exit(exit_code)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
