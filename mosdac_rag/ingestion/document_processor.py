"""
Document Processor for loading corpus files and deriving per-document features.
"""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from ..exceptions import ExtractionError
from ..kg.entity_extractor import EntityExtractor, PatternEntityExtractor
from ..kg.models import ExtractedEntity
from ..rag.models import Document

logger = logging.getLogger(__name__)

DOMAIN_TERMS = [
    'satellite', 'mission', 'data', 'instrument', 'observation', 'mosdac', 'isro',
    'meteorological', 'oceanographic', 'climate', 'weather', 'forecast', 'monitoring',
    'temperature', 'humidity', 'rainfall', 'chlorophyll', 'ocean', 'atmosphere'
]

SUMMARY_TERMS = ['satellite', 'mission', 'data', 'instrument', 'observation', 'mosdac', 'isro']

SECTION_PATTERNS = [
    re.compile(r'^(Overview|Introduction|Background)[\s:]', re.IGNORECASE),
    re.compile(r'^(Mission Objectives?|Goals?)[\s:]', re.IGNORECASE),
    re.compile(r'^(Instruments?|Payload)[\s:]', re.IGNORECASE),
    re.compile(r'^(Data Products?)[\s:]', re.IGNORECASE),
    re.compile(r'^(Applications?)[\s:]', re.IGNORECASE),
    re.compile(r'^(Technical Specifications?)[\s:]', re.IGNORECASE),
    re.compile(r'^(Contact|Support)[\s:]', re.IGNORECASE),
]


@dataclass
class DocumentSection:
    title: str
    content: str
    start_offset: int
    end_offset: int


@dataclass
class ProcessedDocument:
    """A document together with everything derived from its content."""
    document: Document
    entities: List[ExtractedEntity]
    keywords: List[str]
    summary: str
    sections: List[DocumentSection] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentProcessor:
    """Processor for reading corpus files and analysing document content."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, extractor: Optional[EntityExtractor] = None):
        self.config = config or {}
        self.extractor = extractor or PatternEntityExtractor()
        self.supported_formats = self.config.get("supported_formats", ["json", "txt", "md", "html"])
        self.max_keywords = self.config.get("max_keywords", 15)
        self.max_content_length = self.config.get("max_content_length", 1000000)

    def process(self, document: Document) -> ProcessedDocument:
        """
        Analyse a document without modifying it.

        Raises:
            ExtractionError: if the content is not usable text
        """
        if not self.validate_content(document.content):
            raise ExtractionError(f"Document {document.id} has no usable content", document_id=document.id)

        content = document.content
        return ProcessedDocument(
            document=document,
            entities=self.extractor.extract(content),
            keywords=self.extract_keywords(content),
            summary=self.generate_summary(content),
            sections=self.extract_sections(content),
            metadata=self.calculate_metadata(content)
        )

    def validate_content(self, content: Any) -> bool:
        """Validate that content is suitable for processing."""
        if not isinstance(content, str) or not content.strip():
            return False
        return len(content) <= self.max_content_length

    def clean_text(self, content: str) -> str:
        """Strip scripts, styles and markup from HTML content."""
        content = re.sub(r'<script[^>]*>[\s\S]*?</script>', '', content, flags=re.IGNORECASE)
        content = re.sub(r'<style[^>]*>[\s\S]*?</style>', '', content, flags=re.IGNORECASE)
        content = re.sub(r'<[^>]*>', ' ', content)
        return re.sub(r'\s+', ' ', content).strip()

    def extract_keywords(self, text: str) -> List[str]:
        """Most frequent words longer than three characters, domain terms counted double."""
        words = [
            word for word in re.sub(r'[^\w\s]', ' ', text.lower()).split()
            if len(word) > 3
        ]
        counts = Counter(words)
        for term in DOMAIN_TERMS:
            if counts[term]:
                counts[term] *= 2

        # sorted() is stable, so ties keep first-occurrence order
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [word for word, _ in ranked[:self.max_keywords]]

    def generate_summary(self, text: str) -> str:
        """Extractive summary: the three best-scoring sentences."""
        sentences = [s.strip() for s in re.split(r'[.!?]+', text) if len(s.strip()) > 20]
        if len(sentences) <= 3:
            return text.strip()

        scored = []
        for index, sentence in enumerate(sentences):
            score = (len(sentences) - index) / len(sentences) * 0.3
            lower_sentence = sentence.lower()
            score += sum(0.2 for term in SUMMARY_TERMS if term in lower_sentence)
            if 50 < len(sentence) < 200:
                score += 0.1
            scored.append((score, sentence))

        top = sorted(scored, key=lambda item: item[0], reverse=True)[:3]
        return '. '.join(sentence for _, sentence in top) + '.'

    def extract_sections(self, text: str) -> List[DocumentSection]:
        """Split text into titled sections using common header shapes."""
        sections = []
        current_title = None
        current_lines: List[str] = []
        current_start = 0
        cursor = 0

        def close_section(end: int):
            if current_title and current_lines:
                sections.append(DocumentSection(
                    title=current_title,
                    content='\n'.join(current_lines),
                    start_offset=current_start,
                    end_offset=end
                ))

        for raw_line in text.split('\n'):
            line_start = cursor
            cursor += len(raw_line) + 1
            line = raw_line.strip()
            if not line:
                continue

            is_header = (
                any(pattern.match(line) for pattern in SECTION_PATTERNS)
                or (len(line) < 100 and line.endswith(':'))
                or (len(line) < 50 and re.fullmatch(r'[A-Z][A-Za-z\s]+', line) is not None)
            )

            if is_header:
                close_section(line_start)
                current_title = line.rstrip(':')
                current_lines = []
                current_start = line_start
            elif current_title:
                current_lines.append(line)

        close_section(len(text))
        return sections

    def calculate_metadata(self, text: str) -> Dict[str, Any]:
        """Word and sentence counts plus a Flesch-style readability score."""
        words = text.split()
        sentences = [s for s in re.split(r'[.!?]+', text) if s.strip()]
        if not words or not sentences:
            return {"language": "en", "readability": 0, "word_count": len(words), "sentence_count": len(sentences)}

        avg_words_per_sentence = len(words) / len(sentences)
        avg_syllables_per_word = self._estimate_syllables(words)
        readability = 206.835 - 1.015 * avg_words_per_sentence - 84.6 * avg_syllables_per_word

        return {
            "language": "en",
            "readability": round(max(0.0, min(100.0, readability))),
            "word_count": len(words),
            "sentence_count": len(sentences)
        }

    def _estimate_syllables(self, words: List[str]) -> float:
        total = 0
        for word in words:
            letters = re.sub(r'[^a-z]', '', word.lower())
            letters = re.sub(r'[aeiou]{2,}', 'a', letters)
            total += max(1, len(re.findall(r'[aeiou]', letters)))
        return total / len(words)

    def load_documents(self, path: Union[str, Path]) -> List[Document]:
        """
        Load documents from a file or a directory tree.

        JSON files hold one document object or a list of them; text, markdown
        and HTML files become one document each. Markdown is titled by its
        first line, HTML by its <title>, plain text by its file name. File
        documents are identified by their path below ``path``.
        Unreadable files are logged and skipped.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Document path {path} does not exist")
            return []

        if path.is_file():
            root, files = path.parent, [path]
        else:
            root, files = path, sorted(p for p in path.rglob("*") if p.is_file())

        documents = []
        taken_ids = set()
        for file_path in files:
            if file_path.suffix.lower()[1:] not in self.supported_formats:
                continue
            try:
                documents.extend(self._load_file(file_path, root, taken_ids))
            except (OSError, UnicodeDecodeError, ValueError, KeyError) as e:
                logger.error(f"Failed to load documents from {file_path}: {e}")

        logger.info(f"Loaded {len(documents)} documents from {path}")
        return documents

    def _load_file(self, file_path: Path, root: Path, taken_ids: set) -> List[Document]:
        extension = file_path.suffix.lower()

        with open(file_path, 'r', encoding='utf-8') as f:
            raw = f.read()

        if extension == ".json":
            data = json.loads(raw)
            records = data if isinstance(data, list) else [data]
            loaded = [Document.from_dict(record) for record in records]
            taken_ids.update(document.id for document in loaded)
            return loaded

        content = self.clean_text(raw) if extension in (".html", ".htm") else raw
        first_line = next((line.strip() for line in raw.splitlines() if line.strip()), file_path.stem)
        title = first_line.lstrip('#').strip() if extension == ".md" else file_path.stem.replace('_', ' ').title()
        if extension in (".html", ".htm"):
            match = re.search(r'<title[^>]*>(.*?)</title>', raw, re.IGNORECASE | re.DOTALL)
            title = match.group(1).strip() if match else title

        # ids are paths relative to the load root; the extension is kept only to break a clash
        relative = file_path.relative_to(root)
        doc_id = relative.with_suffix("").as_posix()
        if doc_id in taken_ids:
            doc_id = relative.as_posix()
        taken_ids.add(doc_id)

        return [Document(
            id=doc_id,
            url=file_path.resolve().as_uri(),
            title=title,
            content=content,
            category="document"
        )]
