import os
import sys
import signal
import asyncio
import logging
import argparse
from typing import Optional, Set

from aiohttp import web

from dstack_backend.models import config, AllowlistStore
from dstack_backend.errors import ConfigurationError, LoadError
from dstack_backend.services import load_config
from dstack_backend.constants import ServiceNames
from dstack_backend.daemon import read_config_file, LOG_FORMAT
from dstack_backend import app_keys
import dstack_backend.middleware
import dstack_backend.controllers

log = logging.getLogger('dstack_backend')


class WhitelistService(object):

    def __init__(self, my_config: config.WhitelistConfig):
        self.config: config.WhitelistConfig = my_config
        self.allowlist = AllowlistStore(my_config.file)
        self.stop_requested = False
        self._last_mtime: Optional[float] = None
        self._reload_tasks: Set[asyncio.Task] = set()

    def initialize(self):
        """Load the whitelist, raises LoadError if it cannot be read"""
        if self.config.create_missing:
            self.allowlist.create_if_missing()
        log.info("Loading whitelist from [%s]" % self.config.file)
        self._last_mtime = self._mtime()
        self.allowlist.reload()
        log.info("Whitelist loaded with %d pubkeys" % len(self.allowlist))

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[dstack_backend.middleware.cors])
        app[app_keys.name] = ServiceNames.whitelist
        app[app_keys.allowlist] = self.allowlist
        app.add_routes(dstack_backend.controllers.whitelist_routes)
        return app

    async def run(self):
        app = self.build_app()
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self.config.ip_address, self.config.port)
        await site.start()
        log.info("Whitelist service listening on %s:%d" % (self.config.ip_address, self.config.port))

        watcher = asyncio.create_task(self.watch_whitelist_file())
        watcher.set_name("whitelist watcher")
        while not self.stop_requested:
            await asyncio.sleep(0.5)

        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass
        try:
            await asyncio.wait_for(runner.cleanup(), 5)
        except asyncio.TimeoutError:
            log.warning("unclean server shutdown")

    def stop(self):
        self.stop_requested = True

    async def reload(self) -> bool:
        """Reload the whitelist, on failure the current whitelist stays active"""
        try:
            await asyncio.to_thread(self.allowlist.reload)
        except LoadError as e:
            log.error("Failed to reload whitelist, keeping %d pubkeys: %s" % (len(self.allowlist), e))
            return False
        return True

    def request_reload(self):
        """Schedule a reload from a signal handler, must run on the event loop"""
        task = asyncio.create_task(self.reload())
        task.set_name("whitelist reload")
        self._reload_tasks.add(task)
        task.add_done_callback(self._reload_done)

    def _reload_done(self, task: asyncio.Task):
        self._reload_tasks.discard(task)
        if task.cancelled():
            return
        e = task.exception()
        if e is not None:
            log.error("Unexpected error reloading whitelist: %r" % e)

    async def check_for_changes(self) -> bool:
        """Reload if the whitelist file was modified, returns True if a reload was attempted"""
        mtime = self._mtime()
        if mtime is None or mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        log.info("Whitelist file [%s] changed, reloading" % self.config.file)
        await self.reload()
        return True

    async def watch_whitelist_file(self):
        while True:
            await asyncio.sleep(self.config.reload_interval)
            await self.check_for_changes()

    def _mtime(self) -> Optional[float]:
        try:
            return os.path.getmtime(self.config.file)
        except OSError:
            return None


def main(argv=None):
    parser = argparse.ArgumentParser("Whitelist Service")
    parser.add_argument("--config", default=None,
                        help="INI configuration file, environment variables take precedence")
    xargs = parser.parse_args(argv)

    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
    try:
        my_config = load_config.run_whitelist(custom_values=read_config_file(xargs.config))
    except ConfigurationError as e:
        log.error("Invalid configuration: %s" % e)
        sys.exit(1)
    log.setLevel(my_config.log_level)

    log.info("Starting Whitelist Service")
    log.info("Listen address: %s:%d" % (my_config.ip_address, my_config.port))
    log.info("Whitelist file: %s" % my_config.file)

    service = WhitelistService(my_config)
    try:
        service.initialize()
    except LoadError as e:
        log.error("Failed to load whitelist: %s" % e)
        sys.exit(1)

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, service.stop)
    loop.add_signal_handler(signal.SIGTERM, service.stop)
    # SIGHUP forces a reload, eg after editing the file in place
    loop.add_signal_handler(signal.SIGHUP,
                            service.request_reload)

    service_task = loop.create_task(service.run())
    service_task.set_name("whitelist service")
    loop.run_until_complete(service_task)
    loop.close()
    sys.exit(0)


if __name__ == "__main__":
    main()
