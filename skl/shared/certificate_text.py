from __future__ import annotations

import re
from html.parser import HTMLParser

DEFAULT_REGULATION_TEXT = (
    "Berdasarkan Peraturan Menteri Pendidikan, Kebudayaan, Riset, dan Teknologi "
    "Nomor 21 Tahun 2022 tentang Standar Penilaian Pendidikan pada Pendidikan "
    "Anak Usia Dini, Jenjang Pendidikan Dasar, dan Jenjang Pendidikan Menengah."
)

CRITERIA_HEADING = (
    "Kriteria Lulus dari Satuan Pendidikan sesuai dengan peraturan perundang-undangan."
)

DEFAULT_CRITERIA_TEMPLATES = (
    "1. Surat Kepala Dinas Pendidikan Provinsi {province} Nomor : "
    "400.14.4.3/1107/PSMA/DISDIK-2024 tanggal 18 April 2025 tentang Kelulusan "
    "SMA/SMK/SLB Tahun Ajaran {academic_year}",
    "2. Ketuntasan dari seluruh program pembelajaran sesuai kurikulum yang "
    "berlaku, termasuk Ekstrakurikuler dan Prestasi lainnya.",
    "3. Memiliki nilai sikap dan perilaku minimal baik sesuai ketentuan yang "
    "berlaku di {school}.",
    "4. Mengikuti Asesmen Sumatif Akhir Jenjang yang diselenggarakan oleh "
    "{school} pada Tahun Ajaran {academic_year}.",
)

DEFAULT_BEFORE_STUDENT_TEXT = (
    "Yang bertanda tangan di bawah ini, Kepala Sekolah Menengah Atas, menerangkan bahwa:"
)

DEFAULT_AFTER_STUDENT_TEXT = (
    "telah dinyatakan LULUS dari Satuan Pendidikan berdasarkan hasil rapat pleno kelulusan."
)

DEFAULT_CLOSING_TEXT = (
    "Demikian Surat Keterangan Kelulusan ini diberikan agar dapat dipergunakan "
    "sebagaimana mestinya."
)

BULLET = "• "

_LINE_BREAK_TAGS = {"p", "br", "ul", "ol", "li", "div"}
_WHITESPACE_RE = re.compile(r"\s+")


def default_criteria_lines(school: str, province: str, academic_year: str) -> list[str]:
    return [
        template.format(school=school, province=province, academic_year=academic_year)
        for template in DEFAULT_CRITERIA_TEMPLATES
    ]


class _CriteriaParser(HTMLParser):
    """Flatten editor markup into plain lines.

    Block tags end the current line; each ``<li>`` opens a bullet line.
    Inline tags (``strong``, ``em`` and unknown ones) are dropped and their
    text kept.
    """

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.lines: list[str] = []
        self._current: list[str] = []

    def _flush(self) -> None:
        text = _WHITESPACE_RE.sub(" ", "".join(self._current)).strip()
        if text and text != BULLET.strip():
            self.lines.append(text)
        self._current = []

    def handle_starttag(self, tag, attrs):
        if tag in _LINE_BREAK_TAGS:
            self._flush()
        if tag == "li":
            self._current.append(BULLET)

    def handle_startendtag(self, tag, attrs):
        if tag in _LINE_BREAK_TAGS:
            self._flush()

    def handle_endtag(self, tag):
        if tag in _LINE_BREAK_TAGS:
            self._flush()

    def handle_data(self, data):
        self._current.append(data)

    def close(self):
        super().close()
        self._flush()


def criteria_lines(markup: str | None) -> list[str]:
    """Return the plain lines of a criteria text.

    ``"<p>Line one</p><ul><li>Item</li></ul>"`` gives ``["Line one", "• Item"]``.
    Text without markup is split on newlines.
    """
    if not markup or not markup.strip():
        return []
    if "<" not in markup:
        return [
            _WHITESPACE_RE.sub(" ", line).strip()
            for line in markup.splitlines()
            if line.strip()
        ]
    parser = _CriteriaParser()
    parser.feed(markup)
    parser.close()
    return parser.lines


def text_or_default(value: str | None, default: str) -> str:
    if value is None or not value.strip():
        return default
    return value
