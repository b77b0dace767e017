"""
backends.py - Lossless compression backends.

Every backend has the same contract: PDF bytes in, a BackendResult out.
compress() never raises; environment problems become BackendUnavailable
failures and anything that goes wrong while running becomes a
BackendExecutionFailed failure.

Backends:
- pikepdf:     re-save with generated object streams (libqpdf, in-process)
- qpdf:        qpdf CLI with flate recompression at level 9
- ghostscript: gs pdfwrite re-distill, images passed through losslessly
- mupdf:       PyMuPDF garbage collection + stream deflate + content cleanup
"""

import io
import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import fitz  # PyMuPDF
import pikepdf

from .config import CompressionSettings, STDERR_TAIL, SUBPROCESS_TIMEOUT
from .errors import BackendExecutionFailed, BackendUnavailable, CompressionError
from .results import BackendResult

logger = logging.getLogger(__name__)


class BackendAdapter(ABC):
    """Base class for a lossless compression backend."""

    backend_id: str = ""
    label: str = ""

    def create_environment(self):
        """
        Build the reusable execution environment.

        Called at most once per process through the registry's
        EnvironmentCache. Raise BackendUnavailable if the backend cannot run.
        """
        return None

    @abstractmethod
    def run(self, data: bytes, environment) -> bytes:
        """Compress `data`; may raise."""
        raise NotImplementedError

    def compress(self, data: bytes, environments) -> BackendResult:
        try:
            environment = environments.get_or_create(self.backend_id, self.create_environment)
        except BackendUnavailable as e:
            return BackendResult.failure(self.backend_id, self.label, e)
        except Exception as e:
            return BackendResult.failure(
                self.backend_id, self.label,
                BackendUnavailable(self.backend_id, f"{self.label} failed to initialize: {e}")
            )

        try:
            output = self.run(data, environment)
        except CompressionError as e:
            return BackendResult.failure(self.backend_id, self.label, e)
        except MemoryError:
            return BackendResult.failure(
                self.backend_id, self.label,
                BackendExecutionFailed(self.backend_id, "out of memory")
            )
        except Exception as e:
            message = str(e) or e.__class__.__name__
            return BackendResult.failure(
                self.backend_id, self.label,
                BackendExecutionFailed(self.backend_id, message)
            )

        if not output:
            return BackendResult.failure(
                self.backend_id, self.label,
                BackendExecutionFailed(self.backend_id, "backend produced an empty document")
            )

        return BackendResult.success(self.backend_id, self.label, output, len(data))


@dataclass(frozen=True)
class CliEnvironment:
    """Resolved external binary."""
    command: str
    version: str


class CliBackend(BackendAdapter):
    """
    Backend that shells out to an external tool.

    Each call gets its own scratch directory holding input.pdf/output.pdf;
    the directory is removed on every exit path.
    """

    candidates: Sequence[str] = ()

    def __init__(self, command: Optional[str] = None, timeout: float = SUBPROCESS_TIMEOUT):
        self.command = command
        self.timeout = timeout

    def create_environment(self) -> CliEnvironment:
        tried = [self.command] if self.command else list(self.candidates)
        for candidate in tried:
            try:
                proc = subprocess.run(
                    [candidate, "--version"],
                    capture_output=True,
                    text=True,
                    timeout=10
                )
            except (subprocess.SubprocessError, OSError):
                continue
            if proc.returncode == 0:
                version = (proc.stdout.strip().splitlines() or ["unknown"])[0]
                logger.info(f"{self.label}: using {candidate} ({version})")
                return CliEnvironment(command=candidate, version=version)

        raise BackendUnavailable(
            self.backend_id,
            f"{self.label} not found (tried {', '.join(tried)})"
        )

    @abstractmethod
    def build_command(self, command: str, input_path: Path, output_path: Path) -> List[str]:
        raise NotImplementedError

    def run(self, data: bytes, environment: CliEnvironment) -> bytes:
        with tempfile.TemporaryDirectory(prefix=f"pdf_shrink_{self.backend_id}_") as tmpdir:
            input_path = Path(tmpdir) / "input.pdf"
            output_path = Path(tmpdir) / "output.pdf"
            input_path.write_bytes(data)

            cmd = self.build_command(environment.command, input_path, output_path)
            logger.debug(f"{self.label}: {' '.join(cmd)}")

            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    timeout=self.timeout
                )
            except subprocess.TimeoutExpired:
                raise BackendExecutionFailed(
                    self.backend_id, f"{self.label} timed out after {self.timeout:.0f}s"
                )

            if result.returncode != 0:
                stderr = (result.stderr or result.stdout or "").strip()[-STDERR_TAIL:]
                message = f"{self.label} exited with code {result.returncode}"
                if stderr:
                    message = f"{message}: {stderr}"
                raise BackendExecutionFailed(self.backend_id, message, result.returncode)

            if not output_path.exists():
                raise BackendExecutionFailed(self.backend_id, f"{self.label} wrote no output file")

            return output_path.read_bytes()


class PikepdfBackend(BackendAdapter):
    backend_id = "pikepdf"
    label = "pikepdf object streams"

    def create_environment(self) -> str:
        return pikepdf.__version__

    def run(self, data: bytes, environment) -> bytes:
        try:
            with pikepdf.open(io.BytesIO(data)) as pdf:
                buffer = io.BytesIO()
                pdf.save(
                    buffer,
                    compress_streams=True,
                    object_stream_mode=pikepdf.ObjectStreamMode.generate
                )
                return buffer.getvalue()
        except pikepdf.PdfError as e:
            raise BackendExecutionFailed(self.backend_id, f"pikepdf could not process PDF: {e}")


class QpdfBackend(CliBackend):
    backend_id = "qpdf"
    label = "QPDF"
    candidates = ("qpdf",)

    def build_command(self, command: str, input_path: Path, output_path: Path) -> List[str]:
        return [
            command,
            "--stream-data=compress",
            "--object-streams=generate",
            "--recompress-flate",
            "--compression-level=9",
            str(input_path),
            str(output_path),
        ]


class GhostscriptBackend(CliBackend):
    backend_id = "ghostscript"
    label = "Ghostscript"
    candidates = ("gs", "gswin64c")

    def build_command(self, command: str, input_path: Path, output_path: Path) -> List[str]:
        return [
            command,
            "-sDEVICE=pdfwrite",
            "-dNOPAUSE",
            "-dBATCH",
            "-dQUIET",
            "-dSAFER",
            # Deduplicate and shrink fonts
            "-dDetectDuplicateImages=true",
            "-dCompressFonts=true",
            "-dSubsetFonts=true",
            # Keep every image at full resolution, lossless filters only
            "-dDownsampleColorImages=false",
            "-dDownsampleGrayImages=false",
            "-dDownsampleMonoImages=false",
            "-dAutoFilterColorImages=false",
            "-dAutoFilterGrayImages=false",
            "-dColorImageFilter=/FlateEncode",
            "-dGrayImageFilter=/FlateEncode",
            "-dMonoImageFilter=/CCITTFaxEncode",
            f"-sOutputFile={output_path}",
            str(input_path),
        ]


class MupdfBackend(BackendAdapter):
    backend_id = "mupdf"
    label = "MuPDF"

    def create_environment(self) -> str:
        return fitz.VersionBind

    def run(self, data: bytes, environment) -> bytes:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if not doc.is_pdf:
                raise BackendExecutionFailed(self.backend_id, "Failed to open document as PDF")
            # garbage=4: drop unused objects and merge duplicates
            return doc.tobytes(garbage=4, deflate=True, clean=True)


def default_backends(settings: CompressionSettings) -> List[BackendAdapter]:
    """Built-in backends in registration (display) order."""
    return [
        PikepdfBackend(),
        QpdfBackend(command=settings.qpdf_command, timeout=settings.subprocess_timeout),
        GhostscriptBackend(command=settings.gs_command, timeout=settings.subprocess_timeout),
        MupdfBackend(),
    ]
