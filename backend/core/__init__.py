"""Request tracing, logging setup and Sentry integration."""
