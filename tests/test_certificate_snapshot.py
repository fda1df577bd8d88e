import os

import pytest
from PIL import Image
from PyPDF2 import PdfReader

from skl.services import certificates_snapshot
from skl.services.certificates_snapshot import (
    SnapshotSourceError,
    export_snapshot,
    rasterize,
    select_pages,
    snapshot_filename,
)
from skl.shared.certificate_document import compose_document
from skl.shared.certificates import CertificateError
from skl.shared.certificates_layout import PAGE_HEIGHT, PAGE_WIDTH, layout_document
from conftest import grade_list


def _layout(data):
    return layout_document(compose_document(data))


def test_png_snapshot_with_progress(tmp_path, make_data):
    steps = []
    out = tmp_path / "skl.png"
    result = export_snapshot(
        _layout(make_data()),
        str(out),
        progress=lambda step, percent: steps.append((percent, step)),
    )
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    assert [percent for percent, _ in steps] == [0, 20, 50, 80, 100]
    assert all(step for _, step in steps)
    with Image.open(out) as image:
        assert image.width == result.width_px == round(PAGE_WIDTH * 2)
        assert image.height == result.height_px == round(PAGE_HEIGHT * 2) * result.pages


def test_pages_are_stacked(make_data):
    layout = _layout(make_data(grades=grade_list(20)))
    image = rasterize(layout, scale=1.0)
    assert image.height == round(PAGE_HEIGHT) * layout.page_count
    single = rasterize(layout, "page-2", scale=1.0)
    assert single.height == round(PAGE_HEIGHT)


def test_region_lookup(make_data):
    layout = _layout(make_data())
    assert len(select_pages(layout, "certificate")) == layout.page_count
    assert select_pages(layout, "page-1")[0].number == 1
    for region in ("page-99", "page-x", "sidebar"):
        with pytest.raises(SnapshotSourceError):
            select_pages(layout, region)


def test_missing_region_writes_nothing(tmp_path, make_data):
    out = tmp_path / "skl.png"
    steps = []
    with pytest.raises(CertificateError):
        export_snapshot(
            _layout(make_data()),
            str(out),
            region="page-42",
            progress=lambda step, percent: steps.append(percent),
        )
    assert not out.exists()
    assert steps == [0]


def test_pdf_snapshot_is_single_page(tmp_path, make_data):
    layout = _layout(make_data(grades=grade_list(20)))
    out = tmp_path / "skl.pdf"
    export_snapshot(layout, str(out), fmt="pdf", scale=1.0)
    reader = PdfReader(str(out))
    assert len(reader.pages) == 1
    box = reader.pages[0].mediabox
    assert float(box.width) == pytest.approx(PAGE_WIDTH, abs=0.01)
    assert float(box.height) == pytest.approx(PAGE_HEIGHT * layout.page_count, rel=0.01)


def test_failed_encode_removes_partial_file(tmp_path, make_data, monkeypatch):
    out = tmp_path / "skl.pdf"
    out.write_bytes(b"partial")

    def broken(image, title):
        raise OSError("disk full")

    monkeypatch.setattr(certificates_snapshot, "_embed_in_pdf", broken)
    with pytest.raises(OSError):
        export_snapshot(_layout(make_data()), str(out), fmt="pdf", scale=0.5)
    assert not os.path.exists(out)


def test_unknown_format(tmp_path, make_data):
    with pytest.raises(ValueError):
        export_snapshot(_layout(make_data()), str(tmp_path / "x.gif"), fmt="gif")


def test_bad_images_do_not_stop_snapshot(tmp_path, make_data):
    layout = _layout(make_data(school_logo="/uploads/nope.png", use_digital_signature=True))
    out = tmp_path / "skl.png"
    export_snapshot(layout, str(out), asset_root=str(tmp_path), scale=0.5)
    assert out.exists()


def test_snapshot_filename(make_data):
    assert snapshot_filename(make_data()) == "SKL_Tanpa_Nilai_0061234567.png"
    assert (
        snapshot_filename(make_data(grades=grade_list(3)), "pdf")
        == "SKL_Dengan_Nilai_0061234567.pdf"
    )
