"""Convenience launcher for the command-line collector.

Usage:
  python run_report.py <sprint_start_date> [sprint_end_date] [taxonomy_id]
"""

from sprint_app.cli import main

if __name__ == "__main__":
    main()
