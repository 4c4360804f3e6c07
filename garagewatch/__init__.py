# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Garage door monitor with open-too-long email alerts.

Subpackages:
- door: state machine, alert timer and serialized dispatch
- mail: minimal SMTP client and background alert delivery

Modules:
- config: YAML configuration with ``!env`` tags
- hardware: gpiozero door sensor and opener output
- display: logging status display
- service: MonitorService and the ``garagewatch`` CLI
"""
