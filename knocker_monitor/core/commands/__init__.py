"""Command runners behind the knocker-monitor CLI."""
