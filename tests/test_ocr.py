import numpy as np
import pytest

from plate_reader import ocr


def box(x, y, w=40, h=20):
    return [[x, y], [x + w, y], [x + w, y + h], [x, y + h]]


class FakeEasyOCR:
    def __init__(self, fragments):
        self.fragments = fragments
        self.calls = []

    def readtext(self, image, detail=1):
        self.calls.append((image.shape, detail))
        return self.fragments


def make_reader(monkeypatch, fragments):
    fake = FakeEasyOCR(fragments)
    monkeypatch.setattr(ocr, "_build_reader", lambda languages, gpu: fake)
    return ocr.TextReader(), fake


def test_order_fragments_reads_rows_top_to_bottom_left_to_right():
    fragments = [
        (box(120, 62), "1D23", 0.8),
        (box(10, 5), "BRASIL", 0.9),
        (box(10, 60), "ABC", 0.95),
    ]
    assert ocr.order_fragments(fragments) == [["BRASIL"], ["ABC", "1D23"]]


def test_order_fragments_empty():
    assert ocr.order_fragments([]) == []


def test_read_text_joins_rows(monkeypatch):
    reader, fake = make_reader(
        monkeypatch,
        [
            (box(10, 60), "ABC1D23", 0.95),
            (box(10, 5), "BRASIL", 0.9),
            (box(60, 7), "MERCOSUL", 0.7),
        ],
    )
    image = np.zeros((100, 200, 3), dtype=np.uint8)

    assert reader.read_text(image) == "BRASIL MERCOSUL\nABC1D23"
    # EasyOCR receives a single-channel image.
    assert fake.calls == [((100, 200), 1)]


def test_read_text_returns_empty_string_without_detections(monkeypatch):
    reader, _fake = make_reader(monkeypatch, [])
    assert reader.read_text(np.zeros((10, 10, 3), dtype=np.uint8)) == ""


def test_read_text_rejects_empty_image(monkeypatch):
    reader, _fake = make_reader(monkeypatch, [])
    with pytest.raises(ValueError):
        reader.read_text(np.zeros((0, 0, 3), dtype=np.uint8))
