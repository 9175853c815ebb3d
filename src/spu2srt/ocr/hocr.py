"""hOCR scraping: page -> lines -> words, keeping inline emphasis markup.

Tesseract writes XHTML where each recognized line is an element of class
``ocr_line`` (or ``ocr_caption``/``ocr_header``/``ocr_textfloat``) holding
``ocrx_word`` spans. Italic and bold words carry ``<em>``/``<strong>``
children, and apostrophes and quotes appear as ``&#39;`` and ``&quot;``.
Quotes in word text are re-spelled that way so the cleanup rules see what
tesseract wrote; every other character, including a literal ``&`` or
``<``, is passed through decoded.
"""

from __future__ import annotations

from pathlib import Path

from lxml import etree

from spu2srt.errors import OcrOutputError
from spu2srt.models import OcrDocument

_LINE_CLASSES = ("ocr_line", "ocr_caption", "ocr_header", "ocr_textfloat")
_RESPELL = str.maketrans({"'": "&#39;", '"': "&quot;"})


def _has_class(name: str) -> str:
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"


_LINES_XPATH = etree.XPath("//*[" + " or ".join(_has_class(c) for c in _LINE_CLASSES) + "]")
_WORDS_XPATH = etree.XPath(".//*[" + _has_class("ocrx_word") + "]")


def _respell(text: str | None) -> str:
    # only quotes go back to entities; &, < and > stay literal characters
    return (text or "").translate(_RESPELL)


def word_markup(element: etree._Element) -> str:
    """Return the inner markup of a word element with namespaces dropped."""
    parts = [_respell(element.text)]
    for child in element:
        if isinstance(child.tag, str):
            tag = etree.QName(child).localname
            parts.append(f"<{tag}>{word_markup(child)}</{tag}>")
        parts.append(_respell(child.tail))
    return "".join(parts).strip()


def parse_hocr_string(markup: bytes | str) -> OcrDocument:
    """Parse hOCR *markup* into an :class:`OcrDocument`.

    Raises ``lxml.etree.XMLSyntaxError`` on malformed input.
    """
    if isinstance(markup, str):
        markup = markup.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
    root = etree.fromstring(markup, parser)
    return _document_from_root(root)


def parse_hocr(path: Path) -> OcrDocument:
    """Parse the hOCR file at *path*.

    Raises
    ------
    OcrOutputError
        If the file is missing, unreadable or not well-formed.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise OcrOutputError(path, str(exc)) from exc
    if not data.strip():
        raise OcrOutputError(path, "file is empty")
    try:
        return parse_hocr_string(data)
    except etree.XMLSyntaxError as exc:
        raise OcrOutputError(path, f"malformed hOCR: {exc}") from exc


def _document_from_root(root: etree._Element) -> OcrDocument:
    doc = OcrDocument()
    for line in _LINES_XPATH(root):
        words = [w for w in (word_markup(el) for el in _WORDS_XPATH(line)) if w]
        if words:
            doc.lines.append(words)
    return doc
