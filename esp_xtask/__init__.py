"""Build and codegen tasks for the ESP32 Rust workspace."""

__version__ = "0.1.0"
