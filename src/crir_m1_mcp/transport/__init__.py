"""Byte transports the sensor engine talks through."""
