"""
Allowlist sanitizer for link notes.

Notes are rich text produced by an editor widget and rendered as HTML on the
dashboard, so only a small set of formatting tags and attributes survives.
Everything else is dropped and all text is escaped.
"""

from html import escape
from html.parser import HTMLParser
from urllib.parse import urlparse

ALLOWED_TAGS = {
	"p", "br", "strong", "b", "em", "i", "u", "s", "a", "ul", "ol", "li",
	"h1", "h2", "h3", "blockquote", "code", "pre", "span",
}
VOID_TAGS = {"br"}
# Content of these is dropped entirely, not just the tags
DROP_CONTENT_TAGS = {"script", "style", "iframe", "object", "embed", "template"}
ALLOWED_ATTRS = {
	"a": {"href", "title", "target"},
	"span": {"class"},
	"p": {"class"},
	"li": {"class"},
	"ol": {"class"},
	"ul": {"class"},
	"pre": {"class", "spellcheck"},
}
SAFE_SCHEMES = {"", "http", "https", "mailto"}


def _safe_url(value: str) -> bool:
	# Browsers ignore embedded whitespace/control chars in the scheme
	compact = "".join(ch for ch in value if ch > " ").lower()
	return urlparse(compact).scheme in SAFE_SCHEMES


class _Cleaner(HTMLParser):
	def __init__(self):
		super().__init__(convert_charrefs=True)
		self.out = []
		self.open_tags = []
		self.drop_depth = 0

	def handle_starttag(self, tag, attrs):
		if tag in DROP_CONTENT_TAGS:
			self.drop_depth += 1
			return
		if self.drop_depth or tag not in ALLOWED_TAGS:
			return

		allowed = ALLOWED_ATTRS.get(tag, set())
		parts = [tag]
		for name, value in attrs:
			if name not in allowed or value is None:
				continue
			if name == "href" and not _safe_url(value):
				continue
			parts.append(f'{name}="{escape(value, quote=True)}"')
		if tag == "a":
			parts.append('rel="noopener noreferrer"')

		self.out.append(f"<{' '.join(parts)}>")
		if tag not in VOID_TAGS:
			self.open_tags.append(tag)

	def handle_startendtag(self, tag, attrs):
		self.handle_starttag(tag, attrs)
		if tag in self.open_tags and self.open_tags[-1] == tag and tag not in VOID_TAGS:
			self.handle_endtag(tag)

	def handle_endtag(self, tag):
		if tag in DROP_CONTENT_TAGS:
			self.drop_depth = max(0, self.drop_depth - 1)
			return
		if self.drop_depth or tag not in self.open_tags:
			return
		# Close anything left open inside this element
		while self.open_tags:
			current = self.open_tags.pop()
			self.out.append(f"</{current}>")
			if current == tag:
				break

	def handle_data(self, data):
		if not self.drop_depth:
			self.out.append(escape(data, quote=False))

	def result(self) -> str:
		while self.open_tags:
			self.out.append(f"</{self.open_tags.pop()}>")
		return "".join(self.out)


def clean_html(text: str) -> str:
	"""Return `text` reduced to the allowed tags and attributes."""
	if not text:
		return ""
	cleaner = _Cleaner()
	cleaner.feed(text)
	cleaner.close()
	return cleaner.result()
