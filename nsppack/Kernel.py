#!/usr/bin/env python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0
#
# nsppack - Package content archives into a PFS0 submission package
# Copyright (C) 2025-2026 nsppack contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
import json
import logging
import platform
import threading

# Error reporting stays disabled unless a SENTRY_DSN secret is configured explicitly.
import sentry_sdk

from pathlib import Path
from enum import Enum

from signalslot import Signal

from sentry_sdk.integrations.logging import SentryHandler, LoggingIntegration
from sentry_sdk.integrations import atexit as sentryAtexit

APP_NAME = 'nsppack'

PUBLIC_VERSION = '1.0.0'

LOG_LEVEL_MAPPING = {'DEBUG': logging.DEBUG, 'INFO': logging.INFO, 'WARNING': logging.WARNING, 'ERROR': logging.ERROR}


def configureGlobalLogLevel(logLevel):
    """
    Configure the global logging level for the application.
    This affects all loggers created via getLogger().

    Args:
        logLevel: Logging level (logging.DEBUG, logging.INFO, etc.)
    """
    rootLogger = logging.getLogger()
    rootLogger.setLevel(logLevel)

    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    if not rootLogger.handlers:
        consoleHandler = logging.StreamHandler()
        consoleHandler.setLevel(logLevel)
        consoleHandler.setFormatter(formatter)
        rootLogger.addHandler(consoleHandler)
    else:
        for handler in rootLogger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, SentryHandler):
                handler.setLevel(logLevel)
                handler.setFormatter(formatter)


if os.getenv('NSP_LOGGING_LEVEL', '').upper() in LOG_LEVEL_MAPPING:
    configureGlobalLogLevel(LOG_LEVEL_MAPPING[os.getenv('NSP_LOGGING_LEVEL').upper()])


def getLogger(name, version=PUBLIC_VERSION):
    """
    Get a logger with Sentry integration. Sentry itself is initialized at most once, and only
    when SENTRY_DSN can be resolved through SecretGetter.

    Args:
        name: Logger name
        version: Version string for logging context
    """
    try:
        notInit = not sentry_sdk.Hub.current or not sentry_sdk.Hub.current.client
        sentryInitialized = False

        if notInit:
            sentryDsn = SecretGetter.getInstance().get('SENTRY_DSN')

            if sentryDsn:
                # Suppress "sentry is attempting to send pending events..." on exit.
                sentryAtexit.default_callback = lambda pending, timeout: None

                sentry_sdk.init(
                    dsn=sentryDsn,
                    release=f'{APP_NAME}@{version}',
                    default_integrations=False,
                    integrations=[
                        LoggingIntegration(),
                        sentryAtexit.AtexitIntegration(),
                    ],
                )
                sentryInitialized = True

        logger = logging.getLogger(name)

        if not any(isinstance(h, SentryHandler) for h in logger.handlers):
            extra = {'version': version or 'unknown'}
            formatter = logging.Formatter('%(asctime)s version[%(version)s] : %(message)s')

            syslog = SentryHandler()
            syslog.setFormatter(formatter)
            logger.addHandler(syslog)
            logger = logging.LoggerAdapter(logger, extra)

        if sentryInitialized:
            logger.debug('Sentry initialized')

        return logger

    except Exception as e:
        fallbackLogger = logging.getLogger(name)
        fallbackLogger.warning(f"Failed to initialize Sentry: {e}")
        return fallbackLogger


class Singleton:
    """
    Thread-safe singleton base class. Subclasses override initialize() instead of __init__,
    it runs once for the lifetime of the instance.
    """

    _instances = {}
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        if cls not in cls._instances:
            with cls._lock:
                if cls not in cls._instances:
                    cls._instances[cls] = super().__new__(cls)
        return cls._instances[cls]

    def __init__(self, *args, **kwargs):
        if not hasattr(self, '_initialized'):
            self.initialize(*args, **kwargs)
            self._initialized = True

    def initialize(self, *args, **kwargs):
        pass

    @classmethod
    def getInstance(cls):
        if cls not in cls._instances:
            cls()
        return cls._instances[cls]


class EventTiming(Enum):
    """Constants for event timing phases"""
    BEFORE = "BEFORE"
    AFTER = "AFTER"


class EventService(Singleton):
    """
    Dispatches named events to subscribed observers. Every event owns a pair of
    signalslot Signals, one fired before and one after the action it describes.

    Observers are called with keyword arguments only and must accept **kwargs.
    """

    def initialize(self):
        self.signals = {}

    def _normalizeTiming(self, timing):
        if timing is None:
            return None

        if isinstance(timing, EventTiming):
            return timing

        if isinstance(timing, str):
            try:
                return EventTiming(timing.upper())
            except ValueError:
                raise ValueError(f"Invalid timing value: '{timing}'. Must be 'BEFORE' or 'AFTER'.")

        raise ValueError(f"Timing must be EventTiming enum, string, or None. Got: {type(timing)}")

    def isRegistered(self, event):
        return event in self.signals

    def register(self, event):
        if self.isRegistered(event):
            return False
        self.signals[event] = (Signal(), Signal())
        return True

    def unregister(self, event):
        if not self.isRegistered(event):
            return False

        for signalObject in self.signals.pop(event):
            for slot in list(signalObject._slots):
                signalObject.disconnect(slot)
        return True

    def trigger(self, event, timing=None, **kwargs):
        """
        Fire an event. Without timing both phases fire, BEFORE first.
        Unregistered events are ignored.
        """
        normalizedTiming = self._normalizeTiming(timing)

        signalObjects = self.signals.get(event)
        if not signalObjects:
            return

        beforeSignal, afterSignal = signalObjects

        if normalizedTiming in (EventTiming.BEFORE, None):
            beforeSignal.emit(**kwargs)

        if normalizedTiming in (EventTiming.AFTER, None):
            afterSignal.emit(**kwargs)

    def subscribe(self, event, observer, timing=EventTiming.AFTER):
        if not self.isRegistered(event):
            raise KeyError(f"You must register event '{event}' first.")

        normalizedTiming = self._normalizeTiming(timing)
        if normalizedTiming not in (EventTiming.BEFORE, EventTiming.AFTER):
            raise ValueError("Timing must be EventTiming.BEFORE or EventTiming.AFTER.")

        signalObject = self.signals[event][0 if normalizedTiming == EventTiming.BEFORE else 1]
        if observer not in signalObject._slots:
            signalObject.connect(observer)

    def unsubscribe(self, event, observer, timing=None):
        if not self.isRegistered(event):
            return

        timingsToCheck = [self._normalizeTiming(timing)] if timing else [EventTiming.BEFORE, EventTiming.AFTER]

        for t in timingsToCheck:
            signalObject = self.signals[event][0 if t == EventTiming.BEFORE else 1]
            if observer in signalObject._slots:
                signalObject.disconnect(observer)


class Event:
    """ Simple Event wrapper"""

    def __init__(self, key):
        self.key = key

    @property
    def eventService(self):
        return EventService.getInstance()

    def register(self):
        return self.eventService.register(self.key)

    def subscribe(self, observer, timing=EventTiming.AFTER):
        return self.eventService.subscribe(self.key, observer, timing=timing)

    def unsubscribe(self, observer, timing=None):
        return self.eventService.unsubscribe(self.key, observer, timing=timing)

    def trigger(self, timing=None, **kwargs):
        return self.eventService.trigger(self.key, timing=timing, **kwargs)


class StorageLocator(Singleton):
    """
    Resolves where configuration files (.env, .secret, logging config) live.

    Environment Variables:
        NSP_STORAGE_LOCATION: Existing directory searched before every other location.
    """

    def initialize(self, appName=APP_NAME):
        self.appName = appName
        self._homeDir = os.path.expanduser(f'~{os.path.sep}.{appName}')
        self._platformDir = self._getPlatformDir()

        self.logger = logging.getLogger(__name__)

    def _getPlatformDir(self):
        system = platform.system()

        if system == 'Windows':
            appdata = os.getenv('APPDATA', os.path.expanduser('~'))
            return os.path.join(appdata, self.appName)
        elif system == 'Darwin':
            return os.path.expanduser(f'~/Library/Application Support/{self.appName}')
        else:
            return os.path.expanduser(f'~/.config/{self.appName}')

    def _getEnvStorageLocation(self):
        envStorageLocation = os.getenv('NSP_STORAGE_LOCATION')
        if envStorageLocation and os.path.isdir(envStorageLocation):
            return envStorageLocation
        return None

    def findStorage(self, filename):
        """
        Find a file for reading. Search order: NSP_STORAGE_LOCATION -> current -> home -> platform.

        Returns:
            Path to the file (may not exist)
        """
        envStorageLocation = self._getEnvStorageLocation()
        if envStorageLocation:
            envPath = os.path.join(envStorageLocation, filename)
            if os.path.exists(envPath):
                return envPath

        homePath = os.path.join(self._homeDir, filename)
        candidates = (
            os.path.abspath(filename),
            homePath,
            os.path.join(self._platformDir, filename),
        )

        for path in candidates:
            if os.path.exists(path):
                return path

        if envStorageLocation:
            return os.path.join(envStorageLocation, filename)

        return homePath

    def findConfig(self, filename):
        return self.findStorage(filename)


class SecretGetter(Singleton):
    """
    Read-only secret lookup with caching. Environment variables win over the .secret file.
    """

    DEFAULT_SECRET_FILE = '.secret'

    def initialize(self, secretFileName=DEFAULT_SECRET_FILE):
        self.secretFileName = secretFileName
        self._cache = {}
        self._secretData = None

    def getPath(self):
        return StorageLocator.getInstance().findStorage(self.secretFileName)

    def _loadSecretFile(self):
        logger = logging.getLogger(__name__)

        if self._secretData is not None:
            return

        secretPath = self.getPath()

        if not os.path.exists(secretPath):
            self._secretData = {}
            return

        try:
            self._secretData = json.loads(Path(secretPath).read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load secret file {secretPath}: {e}")
            self._secretData = {}
            return

        logger.info(f"Loaded secret file {secretPath}")

    def get(self, key: str):
        if self._cache.get(key):
            return self._cache[key]

        value = os.getenv(key)
        if value:
            self._cache[key] = value
            return value

        self._loadSecretFile()

        value = self._secretData.get(key)
        if value:
            self._cache[key] = value

        return value


# Event pattern: RESTful + /[action] (create, copy, finish)
class NSPEvent:
    entryAdd = Event('/archive/entry/create')
    entryCopy = Event('/archive/entry/copy')
    buildFinish = Event('/archive/build/finish')

    @classmethod
    def registerAll(cls):
        for event in (cls.entryAdd, cls.entryCopy, cls.buildFinish):
            event.register()


NSPEvent.registerAll()
