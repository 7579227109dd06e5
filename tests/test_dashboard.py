from hyperspace.dashboard import DEFAULT_BACKGROUND, background_image, build_columns
from hyperspace.models import Configuration, Group, Link
from hyperspace.sanitize import clean_html


def test_clean_html_keeps_formatting():
	assert clean_html("<p>Hello <strong>there</strong></p>") == "<p>Hello <strong>there</strong></p>"


def test_clean_html_drops_scripts_and_handlers():
	dirty = '<p onclick="steal()">Hi<script>alert(1)</script></p><img src=x onerror=alert(1)>'
	assert clean_html(dirty) == "<p>Hi</p>"


def test_clean_html_filters_urls():
	assert clean_html('<a href="javascript:alert(1)">x</a>') == '<a rel="noopener noreferrer">x</a>'
	assert clean_html('<a href="https://example.com">x</a>') == (
		'<a href="https://example.com" rel="noopener noreferrer">x</a>'
	)


def test_clean_html_escapes_text_and_closes_tags():
	assert clean_html("<em>1 < 2 & 3") == "<em>1 &lt; 2 &amp; 3</em>"
	assert clean_html("") == ""


def make_tree():
	settings = Group(id=9, title="Settings", orderby=0, links=(
		Link(id=90, group_id=9, title="Background Image", link="", imageurl="bg.jpg"),
	))
	tools = Group(id=2, title="Tools", orderby=2, links=(
		Link(id=21, group_id=2, title="B", link="https://b", orderby=1),
		Link(id=20, group_id=2, title="A", link="https://a", imageurl="a.png", orderby=0),
	))
	apps = Group(id=1, title="Apps", orderby=1)
	return [settings, tools, apps]


def test_build_columns_hides_settings_and_sorts():
	columns = build_columns(make_tree())
	assert [c.title for c in columns] == ["Apps", "Tools"]
	assert [card.title for card in columns[1].cards] == ["A", "B"]
	assert columns[1].cards[0].icon_url == "/uploads/a.png"
	assert columns[1].cards[1].icon_url is None


def test_background_prefers_settings_link():
	assert background_image(make_tree()) == "/uploads/bg.jpg"


def test_background_from_configuration_or_default():
	configurations = [Configuration(id=1, title="Background Image", datavalue="bg.jpg")]
	assert background_image([], configurations) == "/uploads/bg.jpg"
	remote = [Configuration(id=1, title="Background Image", datavalue="https://img.example.com/x.jpg")]
	assert background_image([], remote) == "https://img.example.com/x.jpg"
	assert background_image([]) == DEFAULT_BACKGROUND


def test_dashboard_view_renders_sanitized_cards(http, seeded, db):
	db.create_link({
		"group_id": seeded["dev"], "title": "Evil", "link": "https://evil.example.com",
		"notes": "<b>ok</b><script>alert('x')</script>",
	})
	resp = http.get("/")
	assert resp.status_code == 200
	page = resp.get_data(as_text=True)
	assert "Calendar" in page
	assert "<strong>events</strong>" in page
	assert "<b>ok</b>" in page
	assert "alert(" not in page
	assert DEFAULT_BACKGROUND in page


def test_dashboard_view_reports_database_failure(http, db):
	db.conn.close()
	resp = http.get("/")
	assert resp.status_code == 500
	assert "Failed to load dashboard" in resp.get_data(as_text=True)
