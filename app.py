# app.py
"""
Application entry point.

Usage:
  python app.py migrate --db foodstock.db
  python app.py catalog import catalog.xlsx
  python app.py order recommend S003
  python app.py stocktaking create S001 --employee E01
  python app.py production record S001 W002 2 kg
  python app.py sales summary --start 2025-03-01
"""

from foodstock.adapters.cli import main

if __name__ == "__main__":
    main()
