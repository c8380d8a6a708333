"""
Timeline Configuration Manager
Handles loading and saving layout, marker, viewport and label constants.
"""

import copy
import json
import logging
import os
from datetime import timedelta

from timeline.utils.error_handler import ConfigError

logger = logging.getLogger(__name__)


class TimelineConfig:
    """
    Manages timeline tuning constants.

    Values live in the 'timeline' section of a JSON configuration file; any
    key missing from the file keeps its default.
    """

    SECTION = 'timeline'

    DEFAULT_CONFIG = {
        'layout': {
            'top': 8,
            'chart_height': 320,       # vertical band for the markers
            'axis_gap': 20,
            'anno_gap': 36,            # gap between axis and first annotation row
            'anno_row': 18,            # height of one annotation row
            'anno_rows_max': 8,
            'bottom': 16,
            'margin_x': 40,            # horizontal inset of the time scale
            'min_width': 320,
            'container_padding': 40,
            'compact_breakpoint': 640  # at or below this width no annotation band
        },
        'markers': {
            'radius': 8,
            'collide_padding': 1,
            'iterations': 150
        },
        'viewport': {
            'min_span_days': 30,
            'hysteresis_ms': 5
        },
        'labels': {
            'char_width': 7,
            'padding': 4,
            'max_chars': 50
        }
    }

    def __init__(self, config_file=None):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to configuration file (optional)

        Raises:
            ConfigError: If the file holds a non-numeric value for a known key
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load()

    def load(self):
        """Load overrides from the configuration file."""
        if not self.config_file or not os.path.exists(self.config_file):
            return

        if os.path.getsize(self.config_file) == 0:
            return

        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[TimelineConfig] Ignoring unreadable configuration {self.config_file}: {e}")
            return

        overrides = data.get(self.SECTION, {}) if isinstance(data, dict) else {}
        for section, values in overrides.items():
            if section not in self.config or not isinstance(values, dict):
                logger.warning(f"[TimelineConfig] Unknown section '{section}' ignored")
                continue
            for key, value in values.items():
                if key not in self.config[section]:
                    logger.warning(f"[TimelineConfig] Unknown key '{section}.{key}' ignored")
                    continue
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(
                        "Timeline configuration values must be numbers",
                        config_file=self.config_file,
                        key=f"{section}.{key}",
                        value=value
                    )
                self.config[section][key] = value

    def save(self):
        """Write the timeline section back, preserving other sections of the file."""
        if not self.config_file:
            return

        existing_data = {}
        if os.path.exists(self.config_file) and os.path.getsize(self.config_file) > 0:
            try:
                with open(self.config_file, 'r') as f:
                    existing_data = json.load(f)
            except json.JSONDecodeError:
                # File exists but is not valid JSON, start fresh
                existing_data = {}

        if not isinstance(existing_data, dict):
            logger.warning(f"[TimelineConfig] Replacing non-object top level in {self.config_file}")
            existing_data = {}

        existing_data[self.SECTION] = self.config

        config_dir = os.path.dirname(self.config_file)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(self.config_file, 'w') as f:
            json.dump(existing_data, f, indent=2)

    def get(self, section, key):
        return self.config[section][key]

    def set(self, section, key, value):
        if section not in self.config or key not in self.config[section]:
            raise ConfigError("Unknown timeline configuration key", key=f"{section}.{key}", value=value)
        self.config[section][key] = value

    @property
    def layout(self):
        return self.config['layout']

    @property
    def dot_center_y(self):
        """Vertical centre line of the marker band."""
        return self.layout['top'] + self.layout['chart_height'] / 2

    @property
    def axis_y(self):
        return self.layout['top'] + self.layout['chart_height']

    @property
    def anno_y0(self):
        """Baseline of the first annotation row."""
        return self.axis_y + self.layout['anno_gap']

    def total_height(self, compact=False):
        """
        Total drawing height.

        Args:
            compact (bool): Narrow layout without the annotation band

        Returns:
            int: Height in pixels
        """
        if compact:
            return self.axis_y + self.layout['bottom']
        return (self.axis_y + self.layout['anno_gap']
                + self.layout['anno_rows_max'] * self.layout['anno_row']
                + self.layout['bottom'])

    def chart_width(self, container_width):
        return max(self.layout['min_width'], container_width - self.layout['container_padding'])

    def is_compact(self, viewport_width):
        return viewport_width <= self.layout['compact_breakpoint']

    @property
    def min_span(self):
        return timedelta(days=self.config['viewport']['min_span_days'])

    @property
    def hysteresis(self):
        return timedelta(milliseconds=self.config['viewport']['hysteresis_ms'])
