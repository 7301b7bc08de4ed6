"""
Coverage report formats. Each ReportFormat member opens a ReportWriter for
an output directory; callers wanting several formats ask once per format.
"""
from __future__ import annotations

import csv
import html
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import IO, Iterable, List

from loguru import logger

from .coverage import ClassCoverage, CounterEntity, CoverageBundle, CoverageSource, total
from .errors import ConfigurationError, StagingError
from .files import ensure_directory

HTML_DIR_NAME = "html"
CSV_FILE_NAME = "jacoco.csv"
XML_FILE_NAME = "jacoco.xml"
DEFAULT_PACKAGE = "default"

CSV_HEADER = ["GROUP", "PACKAGE", "CLASS"] + [
    f"{entity.value}_{kind}" for entity in CounterEntity for kind in ("MISSED", "COVERED")
]


class ReportWriter(ABC):
    """
    Exclusive write handle for one report. Must be closed before the
    output directory is considered complete.
    """

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @abstractmethod
    def visit_bundle(self, bundle: CoverageBundle) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class CsvReportWriter(ReportWriter):
    def __init__(self, stream: IO[str]):
        self.stream = stream
        self.writer = csv.writer(stream, lineterminator="\n")
        self.writer.writerow(CSV_HEADER)

    def visit_bundle(self, bundle: CoverageBundle) -> None:
        for package, classes in bundle.packages().items():
            for c in classes:
                row = [bundle.name, package, c.simple_name]
                for entity in CounterEntity:
                    counter = c.counter(entity)
                    row += [counter.missed, counter.covered]
                self.writer.writerow(row)

    def close(self) -> None:
        self.stream.close()


class XmlReportWriter(ReportWriter):
    DOCTYPE = '<!DOCTYPE report PUBLIC "-//JACOCO//DTD Report 1.1//EN" "report.dtd">'

    def __init__(self, stream: IO[bytes]):
        self.stream = stream
        self.root = None

    def visit_bundle(self, bundle: CoverageBundle) -> None:
        self.root = ET.Element("report", name=bundle.name)
        for package, classes in bundle.packages().items():
            pkg = ET.SubElement(self.root, "package", name=package.replace(".", "/"))
            for c in classes:
                cls = ET.SubElement(pkg, "class", name=c.name.replace(".", "/"))
                _counters(cls, [c])
            _counters(pkg, classes)
        _counters(self.root, bundle.classes)

    def close(self) -> None:
        try:
            self.stream.write(b'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>')
            self.stream.write(self.DOCTYPE.encode("utf-8"))
            # closed without a bundle: still a well-formed, empty report
            root = self.root if self.root is not None else ET.Element("report", name="")
            self.stream.write(ET.tostring(root, encoding="utf-8", xml_declaration=False))
        finally:
            self.stream.close()


def _counters(parent: ET.Element, classes: List[ClassCoverage]) -> None:
    for entity in CounterEntity:
        counter = total(classes, entity)
        if counter.total:
            ET.SubElement(parent, "counter", type=entity.value,
                          missed=str(counter.missed), covered=str(counter.covered))


class HtmlReportWriter(ReportWriter):
    """Writes index.html, one page per package and a shared stylesheet."""

    STYLESHEET = (
        "body{font-family:sans-serif}"
        "table.coverage{border-collapse:collapse}"
        "table.coverage td,table.coverage th{border:1px solid #ccc;padding:2px 8px}"
        "td.ctr{text-align:right}"
    )

    def __init__(self, directory: Path):
        self.directory = ensure_directory(directory)
        resources = ensure_directory(self.directory / "jacoco-resources")
        (resources / "report.css").write_text(self.STYLESHEET, encoding="utf-8")

    def visit_bundle(self, bundle: CoverageBundle) -> None:
        packages = bundle.packages()
        rows = []
        for package, classes in packages.items():
            name = package or DEFAULT_PACKAGE
            rows.append((f'<a href="{html.escape(name)}/index.html">{html.escape(name)}</a>', classes))
            self._write_package(bundle, name, classes)
        self._write_page(self.directory / "index.html", bundle.name, "jacoco-resources/report.css", rows)

    def _write_package(self, bundle: CoverageBundle, name: str, classes: List[ClassCoverage]) -> None:
        directory = ensure_directory(self.directory / name)
        rows = [(html.escape(c.simple_name), [c]) for c in classes]
        self._write_page(directory / "index.html", f"{bundle.name} > {name}",
                         "../jacoco-resources/report.css", rows)

    def _write_page(self, path: Path, title: str, stylesheet: str, rows) -> None:
        headers = "".join(f"<th>{e.value.title()}</th>" for e in CounterEntity)
        body = []
        for label, classes in rows:
            cells = "".join(f'<td class="ctr">{_percent(classes, e)}</td>' for e in CounterEntity)
            body.append(f"<tr><td>{label}</td>{cells}</tr>")
        all_classes = [c for _, classes in rows for c in classes]
        totals = "".join(f'<td class="ctr">{_percent(all_classes, e)}</td>' for e in CounterEntity)
        page = (
            "<!DOCTYPE html>\n<html><head><meta charset=\"UTF-8\">"
            f"<link rel=\"stylesheet\" href=\"{stylesheet}\"><title>{html.escape(title)}</title></head>"
            f"<body><h1>{html.escape(title)}</h1><table class=\"coverage\">"
            f"<thead><tr><th>Element</th>{headers}</tr></thead>"
            f"<tbody>{''.join(body)}</tbody>"
            f"<tfoot><tr><td>Total</td>{totals}</tr></tfoot></table></body></html>\n"
        )
        path.write_text(page, encoding="utf-8")

    def close(self) -> None:
        # every page is written as soon as it is complete
        pass


def _percent(classes: Iterable[ClassCoverage], entity: CounterEntity) -> str:
    counter = total(classes, entity)
    if not counter.total:
        return "n/a"
    return f"{counter.ratio:.0%}"


class ReportFormat(Enum):
    HTML = "html"
    CSV = "csv"
    XML = "xml"

    @classmethod
    def parse(cls, text: str) -> "ReportFormat":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ConfigurationError(f"Unknown report format {text!r} (expected one of: {choices})") from None

    def create_writer(self, output_directory: Path) -> ReportWriter:
        """
        :raises StagingError: if the destination cannot be opened for writing
        """
        output_directory = Path(output_directory)
        try:
            if self is ReportFormat.HTML:
                return HtmlReportWriter(output_directory / HTML_DIR_NAME)
            if self is ReportFormat.CSV:
                return CsvReportWriter(open(output_directory / CSV_FILE_NAME, "w", newline="", encoding="utf-8"))
            return XmlReportWriter(open(output_directory / XML_FILE_NAME, "wb"))
        except OSError as e:
            raise StagingError(f"Failed to open {self.value} report in {output_directory}", e)


def write_reports(source: CoverageSource, output_directory: Path,
                  formats: Iterable[ReportFormat]) -> None:
    """Read coverage once and write it in every requested format."""
    bundle = source.read()
    ensure_directory(Path(output_directory))
    for fmt in formats:
        with fmt.create_writer(output_directory) as writer:
            writer.visit_bundle(bundle)
        logger.info("Wrote {} report to {}", fmt.value, output_directory)
