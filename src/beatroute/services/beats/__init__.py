"""Beat spreadsheet ingestion."""

from .parser import load_beats, load_beats_from_csv, load_beats_from_workbook, parse_beat_rows

__all__ = ["load_beats", "load_beats_from_csv", "load_beats_from_workbook", "parse_beat_rows"]
