from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from pdf_to_image.config import AppConfig, RuntimeConfig, StorageConfig

FAKE_PDFTOPPM = '''#!{python}
"""Stand-in for poppler's pdftoppm used by the test suite."""
import os
import re
import sys
import time
from pathlib import Path

args = sys.argv[1:]
if args == ["-v"]:
    sys.stderr.write("pdftoppm version 24.02.0\\n")
    sys.exit(0)

log = os.environ.get("FAKE_PDFTOPPM_LOG")
if log:
    with open(log, "a", encoding="utf-8") as handle:
        handle.write(" ".join(args) + "\\n")

extension = "ppm"
first = None
last = None
positional = []
index = 0
while index < len(args):
    arg = args[index]
    if arg == "-jpeg":
        extension = "jpg"
    elif arg == "-png":
        extension = "png"
    elif arg in ("-jpegopt", "-r"):
        index += 1
    elif arg == "-f":
        index += 1
        first = int(args[index])
    elif arg == "-l":
        index += 1
        last = int(args[index])
    else:
        positional.append(arg)
    index += 1

source, prefix = positional
text = Path(source).read_text(encoding="latin-1")
match = re.search(r"pages=(\\d+)", text)
if not match:
    sys.stderr.write("Syntax Error: Couldn't read xref table\\n")
    sys.exit(1)
total = int(match.group(1))
first = first or 1
last = min(last or total, total)
if first > last:
    sys.stderr.write(
        "Wrong page range given: the first page (%d) can not be after the last page (%d).\\n"
        % (first, last)
    )
    sys.exit(99)

delay = float(os.environ.get("FAKE_PDFTOPPM_DELAY", "0"))
fail_page = int(os.environ.get("FAKE_PDFTOPPM_FAIL_PAGE", "0"))
width = len(str(total))
for page in range(first, last + 1):
    if delay:
        time.sleep(delay)
    if page == fail_page:
        sys.stderr.write("Internal Error: page %d could not be rendered\\n" % page)
        sys.exit(3)
    Path("%s-%0*d.%s" % (prefix, width, page, extension)).write_bytes(b"image")
'''

FAKE_PDFINFO = '''#!{python}
"""Stand-in for poppler's pdfinfo used by the test suite."""
import re
import sys
from pathlib import Path

text = Path(sys.argv[1]).read_text(encoding="latin-1")
match = re.search(r"pages=(\\d+)", text)
if not match:
    sys.stderr.write("Syntax Error: Couldn't read xref table\\n")
    sys.exit(1)
print("Producer:       test suite")
print("Pages:          %s" % match.group(1))
'''


def make_pdf(path: Path, pages: int = 5) -> Path:
    path.write_bytes(f"%PDF-1.4\npages={pages}\n%%EOF\n".encode("ascii"))
    return path


def build_config(tmp_path: Path, engine_path: Path | None = None) -> AppConfig:
    runtime = RuntimeConfig(
        output_dir=tmp_path / "output",
        log_dir=tmp_path / "logs",
        engine_path=str(engine_path) if engine_path else None,
    )
    storage = StorageConfig(local_dir=tmp_path / "objects")
    return AppConfig(runtime=runtime, storage=storage)


def install_script(script: Path, template: str) -> Path:
    script.parent.mkdir(exist_ok=True)
    script.write_text(template.format(python=sys.executable), encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def fake_pdftoppm(tmp_path: Path) -> Path:
    return install_script(tmp_path / "bin" / "pdftoppm", FAKE_PDFTOPPM)


@pytest.fixture
def fake_poppler(fake_pdftoppm: Path) -> Path:
    """Directory holding fake ``pdftoppm`` and ``pdfinfo``, as pdf2image expects."""

    install_script(fake_pdftoppm.parent / "pdfinfo", FAKE_PDFINFO)
    return fake_pdftoppm.parent


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    return make_pdf(tmp_path / "document.pdf")
