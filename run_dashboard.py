"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``sprint_app/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

from importlib import import_module
from pathlib import Path

import streamlit as st

from sprint_app.app import main

st.set_page_config(layout="wide")

PAGES_DIR = Path(__file__).parent / "sprint_app" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"sprint_app.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception as e:  # pragma: no cover
        print(f"Failed importing page {mod_name}: {e}")

if __name__ == "__main__":
    main()
