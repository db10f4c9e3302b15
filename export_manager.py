# Script Version: 1.0.0 | Phase 4: Export
# Description: Exports the decomposition tree to JSON, Markdown, DOCX and PDF.
# Implementation: One-way export; JSON mirrors the Node fields (see tree_engine.tree_to_dict).

import json
from typing import List

from state import Node, NodeType
from tree_engine import tree_to_dict

try:
    from docx import Document
except ImportError:
    Document = None


class ExportManager:
    @staticmethod
    def export_json(root: Node, filepath: str):
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(tree_to_dict(root), f, indent=2, ensure_ascii=False)
        print(f"[EXPORT] JSON saved to {filepath}")

    @staticmethod
    def export_markdown(root: Node) -> str:
        """Headings follow tree depth (capped at h6); assumptions and sources become bullets."""
        lines: List[str] = []

        def _walk(node: Node):
            heading = "#" * min(node.level + 1, 6)
            label = "Fundamental" if node.type == NodeType.FUNDAMENTAL else node.type.value.title()
            mastered = " (mastered)" if node.is_mastered else ""
            lines.append(f"{heading} {node.name}{mastered}")
            lines.append("")
            lines.append(f"*{label}* - {node.description}")
            lines.append("")
            if node.core_concept:
                lines.append(f"**Core concept:** {node.core_concept}")
                lines.append("")
            if node.analogy:
                lines.append(f"**Analogy:** {node.analogy}")
                lines.append("")
            if node.why_important:
                lines.append(f"**Why it matters:** {node.why_important}")
                lines.append("")
            if node.reasoning:
                lines.append(f"**Reasoning:** {node.reasoning}")
                lines.append("")
            if node.detailed_explanation:
                lines.append(node.detailed_explanation)
                lines.append("")
            if node.learning_question:
                lines.append(f"**Question:** {node.learning_question}")
                lines.append("")
            if node.assumptions:
                lines.append("**Hidden assumptions:**")
                lines.extend(f"- {a}" for a in node.assumptions)
                lines.append("")
            if node.sources:
                lines.append("**Sources:**")
                lines.extend(f"- [{s['title']}]({s['uri']})" for s in node.sources)
                lines.append("")
            for child in node.children:
                _walk(child)

        _walk(root)
        return "\n".join(lines).rstrip() + "\n"

    @staticmethod
    def export_docx(markdown_text: str, filepath: str):
        """
        Parses simple Markdown (headers, bullets, paragraphs) and creates a DOCX file.
        """
        if not Document:
            print("[ERROR] python-docx not installed.")
            return

        doc = Document()
        for line in markdown_text.split('\n'):
            line = line.strip()
            if not line:
                continue
            if line.startswith('#'):
                level = len(line) - len(line.lstrip('#'))
                doc.add_heading(line[level:].strip(), level=min(level, 9))
            elif line.startswith('- '):
                doc.add_paragraph(line[2:], style='List Bullet')
            else:
                doc.add_paragraph(line.replace('**', '').replace('*', ''))

        try:
            doc.save(filepath)
            print(f"[EXPORT] DOCX saved to {filepath}")
        except Exception as e:
            print(f"[ERROR] Failed to save DOCX: {e}")

    @staticmethod
    def export_pdf(markdown_text: str, filepath: str):
        """
        Renders Markdown through a QTextDocument and prints it to PDF.
        Needs a running QApplication.
        """
        from PyQt6.QtGui import QTextDocument
        from PyQt6.QtPrintSupport import QPrinter

        printer = QPrinter(QPrinter.PrinterMode.HighResolution)
        printer.setOutputFormat(QPrinter.OutputFormat.PdfFormat)
        printer.setOutputFileName(filepath)

        doc = QTextDocument()
        doc.setMarkdown(markdown_text)
        doc.print(printer)
        print(f"[EXPORT] PDF saved to {filepath}")
