import base64
import hashlib
import logging
import threading
import time
from io import BytesIO

import pytest
from PIL import Image
from PyPDF2 import PdfReader

from skl.shared import certificates
from skl.shared.certificate_document import compose_document
from skl.shared.certificates import (
    CertificateTimeoutError,
    certificate_download_name,
    generate_certificate_file,
    generate_certificate_pdf,
)
from skl.shared.certificates_layout import layout_document
from conftest import grade_list


def _png_bytes(color="red", size=(40, 20)):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _data_url(color="blue"):
    return "data:image/png;base64," + base64.b64encode(_png_bytes(color)).decode()


def _image_count(reader):
    count = 0
    for page in reader.pages:
        resources = page["/Resources"]
        if "/XObject" in resources:
            count += len(resources["/XObject"])
    return count


def test_pdf_without_images(tmp_path, make_data):
    out = tmp_path / "skl.pdf"
    digest = generate_certificate_pdf(make_data(), str(out))
    data = out.read_bytes()
    assert data.startswith(b"%PDF")
    assert digest == hashlib.sha256(data).hexdigest()
    reader = PdfReader(str(out))
    text = reader.pages[0].extract_text()
    assert "SURAT KETERANGAN" in text
    assert "Budi Santoso" in text
    assert reader.metadata.title == "Surat Keterangan Lulus - Budi Santoso"


def test_identical_data_gives_identical_bytes(tmp_path, make_data):
    data = make_data(grades=grade_list(12))
    first = tmp_path / "a.pdf"
    second = tmp_path / "b.pdf"
    assert generate_certificate_pdf(data, str(first)) == generate_certificate_pdf(
        data, str(second)
    )
    assert first.read_bytes() == second.read_bytes()


def test_page_count_matches_layout(tmp_path, make_data):
    data = make_data(grades=grade_list(20))
    out = tmp_path / "skl.pdf"
    generate_certificate_pdf(data, str(out))
    reader = PdfReader(str(out))
    layout = layout_document(compose_document(data))
    assert len(reader.pages) == layout.page_count
    assert len(reader.pages) >= 2
    assert any("RATA RATA" in page.extract_text() for page in reader.pages)


def test_images_are_drawn_and_bad_ones_skipped(tmp_path, make_data, caplog):
    upload_root = tmp_path / "uploads"
    (upload_root / "logos").mkdir(parents=True)
    (upload_root / "logos" / "school.png").write_bytes(_png_bytes())
    (upload_root / "broken.png").write_bytes(b"not an image")
    data = make_data(
        school_logo="/uploads/logos/school.png",
        ministry_logo="/uploads/broken.png",
        headmaster_signature=_data_url(),
        school_stamp="/uploads/missing.png",
    )
    out = tmp_path / "skl.pdf"
    with caplog.at_level(logging.WARNING, logger="skl.certificates"):
        generate_certificate_pdf(data, str(out), asset_root=str(upload_root))
    assert out.exists()
    skipped = " ".join(record.getMessage() for record in caplog.records)
    assert "ministry_logo" in skipped
    assert "stamp" in skipped
    assert "school_logo" not in skipped
    assert "signature" not in skipped
    reader = PdfReader(str(out))
    assert _image_count(reader) == 2


def test_digital_signature_embeds_qr(tmp_path, make_data):
    out = tmp_path / "skl.pdf"
    generate_certificate_pdf(make_data(use_digital_signature=True), str(out))
    reader = PdfReader(str(out))
    assert _image_count(reader) == 1
    assert "TTE" in reader.pages[-1].extract_text()


def test_download_name(make_data):
    assert certificate_download_name(make_data()) == "SKL_Budi_Santoso_tanpa_nilai.pdf"
    assert (
        certificate_download_name(make_data(grades=grade_list(2)))
        == "SKL_Budi_Santoso_dengan_nilai.pdf"
    )


def test_generation_timeout(tmp_path, make_data, monkeypatch):
    def stalled(data, output_path, *, asset_root=None):
        time.sleep(0.5)
        return "late"

    monkeypatch.setattr(certificates, "generate_certificate_pdf", stalled)
    with pytest.raises(CertificateTimeoutError):
        generate_certificate_file(make_data(), str(tmp_path / "x.pdf"), timeout=0.05)


def test_late_output_is_removed_after_timeout(tmp_path, make_data, monkeypatch):
    written = threading.Event()

    def slow(data, output_path, *, asset_root=None):
        time.sleep(0.3)
        with open(output_path, "wb") as fh:
            fh.write(b"%PDF-late")
        written.set()
        return "late"

    monkeypatch.setattr(certificates, "generate_certificate_pdf", slow)
    out = tmp_path / "late.pdf"
    with pytest.raises(CertificateTimeoutError):
        generate_certificate_file(make_data(), str(out), timeout=0.05)
    assert written.wait(5)
    deadline = time.monotonic() + 5
    while out.exists() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not out.exists()


def test_generation_without_timeout(tmp_path, make_data):
    out = tmp_path / "x.pdf"
    digest = generate_certificate_file(make_data(), str(out), timeout=5)
    assert digest == hashlib.sha256(out.read_bytes()).hexdigest()
