from __future__ import annotations

import subprocess
from pathlib import Path

from ..errors import RasterizationFailed
from ..models import RenderSettings
from ..pages import ContiguousRange
from .base import RenderControl, describe_range


class PdftoppmEngine:
    """Runs poppler's ``pdftoppm`` once per page range.

    The command is always an argument list, never a shell string.
    """

    name = "pdftoppm"
    file_pattern = ""

    def __init__(self, binary: str | Path | None = None) -> None:
        self._binary = str(binary or "pdftoppm")

    @property
    def binary(self) -> str:
        return self._binary

    def build_command(
        self,
        source: Path,
        prefix: Path,
        settings: RenderSettings,
        page_range: ContiguousRange | None,
    ) -> list[str]:
        command = [self._binary, f"-{settings.image_format.value}"]
        if settings.jpeg_quality is not None:
            command.extend(["-jpegopt", f"quality={settings.jpeg_quality}"])
        command.extend(["-r", str(settings.dpi)])
        if page_range is not None:
            command.extend(["-f", str(page_range.start), "-l", str(page_range.end)])
        command.extend([str(source), str(prefix)])
        return command

    def render(
        self,
        source: Path,
        prefix: Path,
        settings: RenderSettings,
        page_range: ContiguousRange | None,
        control: RenderControl,
    ) -> None:
        command = self.build_command(source, prefix, settings, page_range)
        control.check()
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as exc:
            raise RasterizationFailed(
                f"Rasterization engine not found: {self._binary}",
                command=command,
            ) from exc
        except OSError as exc:
            raise RasterizationFailed(
                f"Unable to start {self._binary}: {exc}",
                command=command,
            ) from exc

        _, stderr = self._wait(process, control)
        if process.returncode != 0:
            detail = stderr.strip() or f"exit status {process.returncode}"
            raise RasterizationFailed(
                f"{self.name} failed on {describe_range(page_range)}: {detail}",
                returncode=process.returncode,
                stderr=stderr,
                command=command,
            )

    def _wait(self, process: subprocess.Popen[str], control: RenderControl) -> tuple[str, str]:
        while True:
            try:
                return process.communicate(timeout=control.poll_interval)
            except subprocess.TimeoutExpired:
                error = control.interruption()
                if error is None:
                    continue
                process.kill()
                process.communicate()
                raise error
