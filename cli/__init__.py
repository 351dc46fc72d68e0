"""
AuditReady CLI Module

This module contains the command-line interface for AuditReady using Typer.

Available commands:
- verify: Run the guardrail gates over a pipeline spec
- repair: Verify and repair a pipeline spec, bounded by --max-attempts
- summarize: Score extraction results against a blueprint
- approve: Approve a pipeline spec that passes verification
- policy: Show effective settings

Example usage:
    from cli.main import app as cli_app

    # Or use directly from command line:
    # auditready verify spec.json
    # auditready repair spec.json --max-attempts 3 -o repaired.json
"""

__version__ = "0.1.0"
__all__ = ["main"]
