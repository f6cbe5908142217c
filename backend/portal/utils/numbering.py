"""Reference number generation for submitted records.

Format tokens:
  {date}       → YYYYMMDD
  {year}       → YYYY
  {seq:N}      → zero-padded sequence number, N digits, counted per prefix

Default formats:
  identification letter:  OLG-IDE-{year}-{seq:4}
  birth certificate:      OLG-BIR-{year}-{seq:4}
  transport services:     TR{date}-{seq:4}
  anything else:          OLG-GEN-{year}-{seq:4}

The generator remembers every number it has issued (or been told about
via ``observe``) so a number is never handed out twice.
"""

import re
from datetime import date

DEFAULT_FORMATS = {
    "IDENTIFICATION_LETTER": "OLG-IDE-{year}-{seq:4}",
    "BIRTH_CERTIFICATE": "OLG-BIR-{year}-{seq:4}",
    "HEALTH_APPOINTMENT": "OLG-HEA-{year}-{seq:4}",
    "BUSINESS_REGISTRATION": "OLG-BUS-{year}-{seq:4}",
    "VEHICLE_REGISTRATION": "TR{date}-{seq:4}",
    "DRIVER_LICENSE": "TR{date}-{seq:4}",
    "EDUCATION_APPLICATION": "OLG-EDU-{year}-{seq:4}",
    "HOUSING_APPLICATION": "OLG-HOU-{year}-{seq:4}",
    "SOCIAL_SECURITY": "OLG-SOC-{year}-{seq:4}",
    "PAYMENT": "TXN-{date}-{seq:6}",
}
FALLBACK_FORMAT = "OLG-GEN-{year}-{seq:4}"

_SEQ_TOKEN = re.compile(r"\{seq:(\d+)\}")


def _fill_dates(fmt: str, today: date) -> str:
    return fmt.replace("{date}", today.strftime("%Y%m%d")).replace("{year}", str(today.year))


def _build_prefix(fmt: str, today: date) -> str:
    """Everything before {seq:N}, with date tokens filled in."""
    return re.sub(r"\{seq:\d+\}.*$", "", _fill_dates(fmt, today))


class ReferenceNumberGenerator:
    def __init__(self, formats: dict[str, str] | None = None):
        self.formats = {**DEFAULT_FORMATS, **(formats or {})}
        self._issued: set[str] = set()

    def format_for(self, kind: str) -> str:
        return self.formats.get(kind, FALLBACK_FORMAT)

    def observe(self, number: str) -> None:
        """Record a number issued elsewhere (e.g. loaded from the API)."""
        self._issued.add(number)

    def _count_existing(self, prefix: str) -> int:
        return sum(1 for n in self._issued if n.startswith(prefix))

    def generate(self, kind: str, today: date | None = None) -> str:
        """Generate the next reference number for ``kind``.

        Returns e.g. "OLG-IDE-2026-0001".
        """
        fmt = self.format_for(kind)
        if not _SEQ_TOKEN.search(fmt):
            fmt = f"{fmt}-{{seq:4}}"
        today = today or date.today()
        prefix = _build_prefix(fmt, today)
        seq_width = int(_SEQ_TOKEN.search(fmt).group(1))

        seq_num = self._count_existing(prefix) + 1
        while True:
            code = _SEQ_TOKEN.sub(f"{seq_num:0{seq_width}d}", _fill_dates(fmt, today))
            if code not in self._issued:
                break
            seq_num += 1

        self._issued.add(code)
        return code
