import html
import io
import logging
import zipfile
from typing import Dict, List

from .markup import extract_title, replace_image_source, scan_images
from .schemas import ExportArtifact, GeneratedSite, ImageSlot

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Generated Website"

# Editable field name -> GeneratedSite attribute
EDITABLE_FIELDS: Dict[str, str] = {
    "html": "markup",
    "css": "styles",
    "js": "script",
}

EXPORT_FILES: Dict[str, str] = {
    "index.html": "text/html",
    "style.css": "text/css",
    "script.js": "text/javascript",
}

PREVIEW_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{styles}</style>
</head>
<body>
  {markup}
  <script>{script}</script>
</body>
</html>"""

EXPORT_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <link rel="stylesheet" href="style.css">
</head>
<body>
  {markup}
  <script src="script.js"></script>
</body>
</html>"""


class ResultEditor:
    """
    Working copy of a generated site.

    The original generation output is kept untouched in `original`; every
    edit, image replacement and export goes through `current`.
    """

    def __init__(self, site: GeneratedSite) -> None:
        self.original = site
        self.current = site.model_copy()

    def update(self, field: str, content: str) -> GeneratedSite:
        if field not in EDITABLE_FIELDS:
            raise KeyError(field)
        self.current = self.current.model_copy(update={EDITABLE_FIELDS[field]: content})
        return self.current

    def text_of(self, field: str) -> str:
        return getattr(self.current, EDITABLE_FIELDS[field])

    @property
    def modified(self) -> bool:
        return self.current != self.original

    def preview_document(self) -> str:
        return PREVIEW_TEMPLATE.format(
            title=DEFAULT_TITLE,
            styles=self.current.styles,
            markup=self.current.markup,
            script=self.current.script,
        )

    def images(self) -> List[ImageSlot]:
        return scan_images(self.current.markup)

    def replace_image(self, image_id: str, new_src: str) -> bool:
        markup, replaced = replace_image_source(self.current.markup, image_id, new_src)
        if replaced:
            self.current = self.current.model_copy(update={"markup": markup})
            logger.info('Replaced image id="%s"', image_id)
        return replaced

    def export(self, filename: str) -> ExportArtifact:
        if filename not in EXPORT_FILES:
            raise KeyError(filename)

        if filename == "index.html":
            content = EXPORT_HTML_TEMPLATE.format(
                title=html.escape(extract_title(self.current.markup) or DEFAULT_TITLE, quote=False),
                markup=self.current.markup,
            )
        elif filename == "style.css":
            content = self.current.styles
        else:
            content = self.current.script

        return ExportArtifact(filename=filename, content=content, media_type=EXPORT_FILES[filename])

    def export_archive(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for filename in EXPORT_FILES:
                zf.writestr(filename, self.export(filename).content)
        return buffer.getvalue()
