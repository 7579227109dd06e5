from io import BytesIO

import pytest


def upload(http, data: bytes, filename: str):
	return http.post(
		"/upload",
		data={"file": (BytesIO(data), filename)},
		content_type="multipart/form-data",
	)


def test_health(http):
	assert http.get("/health").get_json() == {"status": "ok"}


def test_group_with_link_scenario(http):
	resp = http.post("/groups", json={"title": "Apps", "orderby": 0})
	assert resp.status_code == 201
	apps = resp.get_json()

	resp = http.post("/links", json={
		"group_id": apps["id"], "title": "Mail", "link": "https://mail.example.com",
		"imageurl": "mail.png", "orderby": 0,
	})
	assert resp.status_code == 201

	groups = http.get("/groups").get_json()
	assert len(groups) == 1
	assert groups[0]["title"] == "Apps"
	[link] = groups[0]["links"]
	assert link["title"] == "Mail"
	assert link["link"] == "https://mail.example.com"
	assert link["imageurl"] == "mail.png"
	assert link["orderby"] == 0
	assert link["group_id"] == apps["id"]


def test_configuration_update_scenario(http):
	created = http.post("/configurations", json={"title": "Background Image", "datavalue": ""})
	assert created.status_code == 201
	config_id = created.get_json()["id"]

	resp = http.put(f"/configuration/{config_id}", json={"title": "Background Image", "datavalue": "bg.jpg"})
	assert resp.status_code == 200

	fetched = http.get(f"/configurations/{config_id}").get_json()
	assert fetched["datavalue"] == "bg.jpg"


def test_configuration_plural_update_and_delete(http):
	config_id = http.post("/configurations", json={"title": "Theme"}).get_json()["id"]
	assert http.put(f"/configurations/{config_id}", json={"datavalue": "dark"}).get_json()["datavalue"] == "dark"
	assert http.delete(f"/configurations/{config_id}").status_code == 200
	assert http.get("/configurations").get_json() == []


def test_group_update_and_delete(http, seeded):
	resp = http.put(f"/groups/{seeded['dev']}", json={"title": "Development"})
	assert resp.get_json()["title"] == "Development"
	assert resp.get_json()["orderby"] == 1

	resp = http.delete(f"/groups/{seeded['dev']}")
	assert resp.get_json() == {"message": "Group deleted successfully"}
	assert [g["title"] for g in http.get("/groups").get_json()] == ["Apps"]


def test_delete_group_with_links_leaves_orphans(http, seeded):
	assert http.delete(f"/groups/{seeded['apps']}").status_code == 200
	link_ids = {l["id"] for l in http.get("/links").get_json()}
	assert {seeded["mail"], seeded["calendar"], seeded["git"]} == link_ids
	groups = http.get("/groups").get_json()
	assert all(l["group_id"] == seeded["dev"] for g in groups for l in g["links"])


def test_links_listed_in_rank_order(http, seeded):
	http.put(f"/links/{seeded['mail']}", json={"orderby": 5})
	titles = [l["title"] for l in http.get("/links").get_json()]
	assert titles.index("Calendar") < titles.index("Mail")


def test_link_update_keeps_unsent_fields(http, seeded):
	resp = http.put(f"/links/{seeded['calendar']}", json={"title": "Agenda"})
	body = resp.get_json()
	assert body["title"] == "Agenda"
	assert body["link"] == "https://cal.example.com"
	assert body["notes"] == "<p>Team <strong>events</strong></p>"


@pytest.mark.parametrize("method,path", [
	("get", "/groups/999"),
	("put", "/groups/999"),
	("delete", "/groups/999"),
	("get", "/links/999"),
	("delete", "/links/999"),
	("get", "/configurations/999"),
	("put", "/configuration/999"),
])
def test_missing_rows_are_404(http, method, path):
	kwargs = {"json": {"title": "x"}} if method == "put" else {}
	resp = getattr(http, method)(path, **kwargs)
	assert resp.status_code == 404
	assert "not found" in resp.get_json()["error"]


@pytest.mark.parametrize("path,body", [
	("/groups", {}),
	("/groups", {"title": ""}),
	("/groups", ["not", "an", "object"]),
	("/links", {"title": "x", "link": "https://x"}),
	("/configurations", {"datavalue": "x"}),
])
def test_invalid_bodies_are_400(http, path, body):
	resp = http.post(path, json=body)
	assert resp.status_code == 400
	assert resp.get_json()["error"]


def test_persistence_failure_returns_static_message(http, db):
	db.conn.close()
	resp = http.get("/groups")
	assert resp.status_code == 500
	assert resp.get_json() == {"error": "Failed to retrieve groups with links"}


def test_upload_reports_stored_file(http):
	resp = upload(http, b"\x89PNG-data", "icon.png")
	assert resp.status_code == 200
	body = resp.get_json()
	assert body["message"] == "File uploaded successfully"
	assert body["file"]["originalname"] == "icon.png"
	assert body["file"]["size"] == len(b"\x89PNG-data")
	assert body["file"]["filename"].endswith("-icon.png")

	served = http.get(f"/uploads/{body['file']['filename']}")
	assert served.status_code == 200
	assert served.get_data() == b"\x89PNG-data"


def test_uploads_with_same_name_are_kept_apart(http):
	first = upload(http, b"one", "logo.png").get_json()["file"]["filename"]
	second = upload(http, b"two", "logo.png").get_json()["file"]["filename"]
	assert first != second
	assert http.get(f"/uploads/{first}").get_data() == b"one"
	assert http.get(f"/uploads/{second}").get_data() == b"two"


def test_upload_without_file_is_400(http):
	resp = http.post("/upload", data={"title": "no file"}, content_type="multipart/form-data")
	assert resp.status_code == 400


def test_unknown_upload_is_404(http):
	resp = http.get("/uploads/nothing.png")
	assert resp.status_code == 404
	assert resp.get_json() == {"error": "File not found"}


def test_link_must_reference_existing_group(http, seeded):
	resp = http.post("/links", json={"group_id": 999, "title": "x", "link": "https://x"})
	assert resp.status_code == 400
	assert resp.get_json()["error"] == "group_id does not reference an existing group"
	assert len(http.get("/links").get_json()) == 3

	resp = http.put(f"/links/{seeded['mail']}", json={"group_id": 999})
	assert resp.status_code == 400
	assert http.get(f"/links/{seeded['mail']}").get_json()["group_id"] == seeded["apps"]


def test_orphaned_link_stays_editable(http, seeded):
	http.delete(f"/groups/{seeded['apps']}")
	link = http.get(f"/links/{seeded['mail']}").get_json()
	link["title"] = "Webmail"
	resp = http.put(f"/links/{seeded['mail']}", json=link)
	assert resp.status_code == 200
	assert resp.get_json()["title"] == "Webmail"

	resp = http.put(f"/links/{seeded['mail']}", json={"group_id": seeded["dev"]})
	assert resp.get_json()["group_id"] == seeded["dev"]


def test_malformed_json_is_400(http, seeded):
	resp = http.put(f"/groups/{seeded['dev']}", data="{broken", content_type="application/json")
	assert resp.status_code == 400
	assert resp.get_json() == {"error": "Request body must be valid JSON"}
	assert http.get(f"/groups/{seeded['dev']}").get_json()["title"] == "Dev"
