"""Framework-agnostic core: settings, logging, models, ports and errors."""
