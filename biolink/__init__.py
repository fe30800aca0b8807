"""Link-in-bio click tracking and analytics service."""
