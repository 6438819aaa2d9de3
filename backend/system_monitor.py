#!/usr/bin/env python3
"""
Forward Horizon System Monitor
Activity counters (persisted to <data_dir>/system-stats.json) and an
in-memory log of the most recent workflow activity.
"""

import logging
import os
import time

import org_info
from json_store import load_json, save_json

logger = logging.getLogger(__name__)

STATS_FILENAME = 'system-stats.json'
MAX_ACTIVITY_ENTRIES = 100

COUNTERS = (
    'documentsGenerated',
    'emailsSent',
    'appointmentsScheduled',
    'donationsProcessed',
    'volunteersRegistered',
)

SERVICES = ('documentGenerator', 'donorAutomation', 'appointmentSystem')


class SystemMonitor:
    def __init__(self, data_dir, clock=time.time):
        self.path = os.path.join(data_dir, STATS_FILENAME)
        self.clock = clock
        self.stats = {name: 0 for name in COUNTERS}
        self.stats['systemUptime'] = int(self.clock() * 1000)
        stored = load_json(self.path, {})
        if isinstance(stored, dict):
            self.stats.update(stored)
        self.activity = []

    def save(self):
        save_json(self.path, self.stats)

    def log(self, activity, details=None):
        """Record an activity, newest first, keeping the last 100."""
        entry = {
            'timestamp': org_info.utc_now_iso(),
            'activity': activity,
            'details': details or {},
            'id': org_info.epoch_ms(),
        }
        self.activity.insert(0, entry)
        del self.activity[MAX_ACTIVITY_ENTRIES:]
        logger.info(f"[Monitor] {activity}: {entry['details']}")
        return entry

    def increment(self, counter):
        if counter not in COUNTERS:
            raise KeyError(f'Unknown counter: {counter}')
        self.stats[counter] = self.stats.get(counter, 0) + 1
        self.save()
        return self.stats[counter]

    def uptime_hours(self):
        return int((self.clock() * 1000 - self.stats['systemUptime']) // (1000 * 60 * 60))

    def get_status(self):
        return {
            'status': 'healthy',
            'timestamp': org_info.utc_now_iso(),
            'uptime': f'{self.uptime_hours()} hours',
            'stats': dict(self.stats),
            'recentActivity': self.activity[:10],
            'services': {name: 'active' for name in SERVICES},
            'environment': os.environ.get('APP_ENV', 'production'),
        }

    def generate_daily_report(self):
        today = org_info.now_local().date()
        todays = []
        for entry in self.activity:
            when = org_info.parse_datetime(entry['timestamp']).astimezone(org_info.LOCAL_TZ)
            if when.date() == today:
                todays.append(entry)

        def count(word):
            return sum(1 for a in todays if word in a['activity'])

        return {
            'date': today.isoformat(),
            'totalActivities': len(todays),
            'documentsGenerated': count('Document'),
            'emailsSent': count('Email'),
            'appointments': count('Appointment'),
            'donations': count('Donation'),
            'activities': todays,
        }
