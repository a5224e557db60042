import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeGateway, mygene_hit

from gene_annotator.api import deps
from gene_annotator.core.errors import ExternalServiceError
from gene_annotator.main import create_app
from gene_annotator.services.auth import StaticAuthProvider


@pytest.fixture
def auth_holder():
    return {"auth": StaticAuthProvider("user-1")}


@pytest.fixture
def api_gateway():
    return FakeGateway({"TP53": {"took": 2, "total": 1, "hits": [mygene_hit("TP53")]}})


@pytest.fixture
def client(gene_repo, clone_repo, cache, api_gateway, auth_holder):
    app = create_app()
    app.dependency_overrides[deps.get_gene_repo] = lambda: gene_repo
    app.dependency_overrides[deps.get_clone_repo] = lambda: clone_repo
    app.dependency_overrides[deps.get_gene_cache] = lambda: cache
    app.dependency_overrides[deps.get_gateway] = lambda: api_gateway
    app.dependency_overrides[deps.get_auth] = lambda: auth_holder["auth"]
    return TestClient(app)


def _sign_out(auth_holder):
    auth_holder["auth"] = StaticAuthProvider(None)


def _upload(text, name="data.csv"):
    return {"file": (name, text.encode("utf-8"), "text/csv")}


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


# ---- gateway ----
def test_gateway_requires_symbol(client):
    r = client.get("/api/fetch-gene-data")
    assert r.status_code == 400
    assert r.json() == {"error": "Gene symbol is required"}

    r = client.post("/api/fetch-gene-data", json={})
    assert r.status_code == 400


def test_gateway_passes_upstream_json_through(client, api_gateway):
    r = client.get("/api/fetch-gene-data", params={"geneSymbol": "TP53"})
    assert r.status_code == 200
    assert r.json()["hits"][0]["symbol"] == "TP53"

    r = client.post("/api/fetch-gene-data", json={"geneSymbol": "TP53"})
    assert r.status_code == 200
    assert api_gateway.calls == ["TP53", "TP53"]


def test_gateway_upstream_failure_is_500(client, api_gateway):
    api_gateway.error = ExternalServiceError("MyGene.info API error: 503")
    r = client.get("/api/fetch-gene-data", params={"geneSymbol": "TP53"})
    assert r.status_code == 500
    assert r.json() == {"error": "MyGene.info API error: 503"}


# ---- genes ----
def test_resolve_fetches_and_saves_then_lists(client, gene_repo):
    r = client.post("/api/genes/resolve", json={"symbol": "TP53"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["symbol"] == "TP53"
    assert body["clones"] == []

    r = client.get("/api/genes")
    assert r.json()["count"] == 1
    assert r.json()["items"][0]["id"] == body["id"]


def test_resolve_unknown_symbol_is_404(client):
    r = client.post("/api/genes/resolve", json={"symbol": "NOTAGENE"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_resolve_upstream_failure_is_502(client, api_gateway):
    api_gateway.error = ExternalServiceError("MyGene.info request failed: timeout")
    r = client.post("/api/genes/resolve", json={"symbol": "EGFR"})
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "EXTERNAL_SERVICE_ERROR"


def test_search(client, gene_repo):
    gene_repo.add("BRCA1")
    gene_repo.add("BRCA2")
    r = client.get("/api/genes/search", params={"q": "brc"})
    assert r.json()["count"] == 2


# ---- clones ----
def test_clone_lifecycle(client, gene_repo):
    gene = gene_repo.add("BRCA1")

    r = client.post(f"/api/genes/{gene['id']}/clones", json={"clone": "B-1", "tags": ["high-priority"]})
    assert r.status_code == 201, r.text
    clone_id = r.json()["id"]

    r = client.patch(f"/api/clones/{clone_id}", json={"notes": "checked", "tags": "high-priority, complete"})
    assert r.status_code == 200
    assert r.json()["tags"] == ["high-priority", "complete"]

    r = client.get(f"/api/genes/{gene['id']}")
    assert [c["notes"] for c in r.json()["clones"]] == ["checked"]

    r = client.delete(f"/api/clones/{clone_id}")
    assert r.status_code == 204
    assert client.get(f"/api/genes/{gene['id']}").json()["clones"] == []


def test_clone_mutation_requires_sign_in(client, gene_repo, auth_holder):
    gene = gene_repo.add("BRCA1")
    _sign_out(auth_holder)

    r = client.post(f"/api/genes/{gene['id']}/clones", json={"clone": "B-1"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


def test_other_users_clone_is_404(client, gene_repo, clone_repo):
    gene = gene_repo.add("BRCA1")
    theirs = clone_repo.create(gene_id=gene["id"], user_id="user-2", fields={"clone": "X"})

    assert client.patch(f"/api/clones/{theirs['id']}", json={"notes": "x"}).status_code == 404
    assert client.delete(f"/api/clones/{theirs['id']}").status_code == 404


def test_blank_clone_name_is_422(client, gene_repo):
    gene = gene_repo.add("BRCA1")
    r = client.post(f"/api/genes/{gene['id']}/clones", json={"clone": " "})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_patch_null_clone_is_422_and_null_tags_clear(client, gene_repo, clone_repo):
    gene = gene_repo.add("BRCA1")
    mine = clone_repo.create(gene_id=gene["id"], user_id="user-1", fields={"clone": "B-1", "tags": ["complete"]})

    r = client.patch(f"/api/clones/{mine['id']}", json={"clone": None})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert clone_repo.rows[mine["id"]]["clone"] == "B-1"

    r = client.patch(f"/api/clones/{mine['id']}", json={"tags": None})
    assert r.status_code == 200
    assert r.json()["tags"] == []
    assert clone_repo.rows[mine["id"]]["tags"] == []


# ---- imports ----
def test_template_download(client):
    r = client.get("/api/imports/templates/clones")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="clones_template.csv"' in r.headers["content-disposition"]
    assert r.text.startswith("gene_symbol,clone_id,")


def test_import_validation_failure_is_422_and_persists_nothing(client, gene_repo):
    r = client.post("/api/imports/genes", files=_upload("symbol,name\nBRCA1,a\n,b\n"))
    assert r.status_code == 422
    body = r.json()["error"]
    assert body["code"] == "IMPORT_VALIDATION_ERROR"
    assert body["detail"]["errors"] == ["Row 2: Gene symbol is required"]
    assert gene_repo.rows == {}


def test_import_preview_reports_errors_without_writing(client, gene_repo):
    r = client.post("/api/imports/genes/preview", files=_upload("symbol\nBRCA1\n\nTP53\n"))
    assert r.json() == {"row_count": 2, "errors": []}

    r = client.post("/api/imports/clones/preview", files=_upload("gene_symbol,clone_id,concentration\nBRCA1,X,abc\n"))
    assert r.json()["errors"] == ["Row 1: Invalid concentration value"]
    assert gene_repo.upserts == []


def test_gene_import(client):
    r = client.post("/api/imports/genes", files=_upload("Symbol,Name\nBRCA1,a\nTP53,b\n"))
    assert r.status_code == 200
    assert r.json() == {"success_count": 2, "fail_count": 0, "failures": []}

    assert client.get("/api/genes").json()["count"] == 2


def test_clone_import_requires_sign_in(client, gene_repo, auth_holder):
    gene_repo.add("BRCA1")
    _sign_out(auth_holder)

    r = client.post("/api/imports/clones", files=_upload("gene_symbol,clone_id\nBRCA1,B-1\n"))
    assert r.status_code == 401


def test_clone_import_streams_progress(client, gene_repo):
    gene_repo.add("BRCA1")
    csv_text = "gene_symbol,clone_id\nBRCA1,B-1\nBRCA1,B-2\nMISSING,M-1\n"

    r = client.post("/api/imports/clones", params={"stream": "true"}, files=_upload(csv_text))
    assert r.status_code == 200
    events = [json.loads(line) for line in r.text.splitlines() if line]

    progress = [e["progress"] for e in events if "progress" in e]
    assert progress == sorted(progress)
    assert progress[-1] == 100.0
    assert events[-1]["result"] == {
        "success_count": 2,
        "fail_count": 1,
        "failures": ["Row 3: Gene MISSING not found"],
    }


def test_unknown_import_kind_is_422(client):
    assert client.get("/api/imports/templates/proteins").status_code == 422


# ---- table ----
def test_table_rows_and_filters(client, gene_repo, clone_repo):
    brca1 = gene_repo.add("BRCA1")
    gene_repo.add("TP53")
    clone_repo.create(gene_id=brca1["id"], user_id="user-1", fields={"clone": "B-1", "tags": ["high-priority"]})
    clone_repo.create(gene_id=brca1["id"], user_id="user-1", fields={"clone": "B-2"})

    body = client.get("/api/table/rows").json()
    assert body["total"] == 3
    assert body["count"] == 3

    body = client.get("/api/table/rows", params={"priority": "High"}).json()
    assert [r["clone"] for r in body["items"]] == ["B-1"]
    assert body["total"] == 3

    body = client.get("/api/table/rows", params={"search": "tp5", "priority": "all"}).json()
    assert [r["symbol"] for r in body["items"]] == ["TP53"]


def test_table_export(client, gene_repo):
    gene_repo.add("BRCA1", name="BRCA1 DNA repair associated")

    r = client.get("/api/table/export")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="gene_data_' in r.headers["content-disposition"]
    lines = r.text.splitlines()
    assert lines[0].startswith("Gene ID,Symbol,Name,Chromosome,Organism,Protein Name,Priority")
    assert len(lines) == 2


# ---- auth ----
def test_whoami(client, auth_holder):
    assert client.get("/api/auth/me").json() == {"user_id": "user-1", "signed_in": True}
    _sign_out(auth_holder)
    assert client.get("/api/auth/me").json() == {"user_id": None, "signed_in": False}


def test_sign_out_without_token_is_401(client):
    assert client.post("/api/auth/sign-out").status_code == 401
