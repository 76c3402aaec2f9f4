"""
Guest List Parser - Excel/CSV Guest Import
===========================================

Parses an Excel or CSV guest list and auto-detects the guest columns.
Supports .xlsx, .xls, and .csv formats.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

# Common column name variations for auto-detection
NAME_PATTERNS = ['name', 'guest', 'full_name', 'fullname', 'guest_name', 'invitee']
PHONE_PATTERNS = ['phone', 'mobile', 'cell', 'telephone', 'number', 'phone_number', 'mobile_number', 'whatsapp']
NOTES_PATTERNS = ['notes', 'note', 'comment', 'comments', 'remarks']


class GuestListParser:
    """
    Excel/CSV guest list parser with auto-detection of guest columns.

    Usage:
        parser = GuestListParser()
        guests, columns = parser.parse("guests.xlsx")
        # guests: [{"name": "Dana", "phone": "050-111-2222", "notes": ""}, ...]

    Phones are only cleaned here; canonicalization happens when the
    invitation is sent.
    """

    def __init__(self):
        self.detected_columns: Dict[str, Optional[str]] = {}

    def parse(self, file_path: str, sheet_name: Optional[str] = None) -> Tuple[List[Dict], Dict[str, Optional[str]]]:
        """
        Parse Excel/CSV file and return guest data.

        Args:
            file_path: Path to the file (.xlsx, .xls, .csv)
            sheet_name: Optional sheet name for Excel files

        Returns:
            Tuple of (guests list, detected column mapping)
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        ext = path.suffix.lower()

        # Read everything as text: numeric parsing would drop the leading 0 of local numbers
        if ext == '.csv':
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        elif ext in ['.xlsx', '.xls']:
            df = pd.read_excel(path, sheet_name=sheet_name or 0, dtype=str, keep_default_na=False)
        else:
            raise ValueError(f"Unsupported file format: {ext}. Use .xlsx, .xls, or .csv")

        df.columns = [str(c).strip().lower() for c in df.columns]

        name_col = self._find_column(df.columns, NAME_PATTERNS)
        phone_col = self._find_column(df.columns, PHONE_PATTERNS)
        notes_col = self._find_column(df.columns, NOTES_PATTERNS)

        self.detected_columns = {
            'name': name_col,
            'phone': phone_col,
            'notes': notes_col,
        }

        logger.info(f"Detected columns: {self.detected_columns}")

        if not name_col:
            raise ValueError("Could not detect 'Name' column. Please ensure your file has a column with guest names.")

        if not phone_col:
            raise ValueError("Could not detect 'Phone' column. Please ensure your file has a column with phone numbers.")

        guests = []

        for _, row in df.iterrows():
            name = str(row.get(name_col, '')).strip()
            phone = self._clean_phone(str(row.get(phone_col, '')))
            notes = str(row.get(notes_col, '')).strip() if notes_col else ''

            if not name or name.lower() == 'nan' or not phone:
                continue

            if notes.lower() == 'nan':
                notes = ''

            guests.append({
                'name': name,
                'phone': phone,
                'notes': notes,
            })

        logger.info(f"Parsed {len(guests)} guests from {file_path}")
        return guests, self.detected_columns

    def _find_column(self, columns, patterns: List[str]) -> Optional[str]:
        """Find the first column whose name contains one of the patterns."""
        for pattern in patterns:
            for col in columns:
                if pattern in col:
                    return col
        return None

    def _clean_phone(self, phone: str) -> str:
        """
        Keep digits plus the separators the canonicalizer understands.
        Converts a 00 international prefix to plain digits.
        """
        if not phone or phone.lower() == 'nan':
            return ''

        # Excel sometimes stores numbers as floats ("501112222.0")
        phone = re.sub(r'\.0+$', '', phone.strip())

        cleaned = re.sub(r'[^\d+\-() ]', '', phone).strip()

        if cleaned.startswith('00'):
            cleaned = cleaned[2:]

        return cleaned if re.search(r'\d', cleaned) else ''
