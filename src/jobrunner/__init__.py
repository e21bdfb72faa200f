# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

PLUGIN_NAME = "jobrunner"
__version__ = "0.1.0"
