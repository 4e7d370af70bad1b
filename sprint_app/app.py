"""Streamlit entry point: page registry and router."""

from __future__ import annotations

import streamlit as st

PAGES = {}


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def main():
    st.sidebar.title("Sprint Status Collector")
    pages = list(PAGES.keys())
    if not pages:
        st.write("No pages registered yet.")
        return
    preferred_order = ["Sprint Report"]
    ordered = [name for name in preferred_order if name in pages]
    trailing = sorted(name for name in pages if name not in preferred_order)
    pages = ordered + trailing
    page = st.sidebar.selectbox("Page", pages, index=0)
    PAGES[page]()


if __name__ == "__main__":
    main()
