from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio import onboarding
from studio.onboarding import Chunk, chunk_by_heading, is_heading, seed_onboarding, vector_literal

DOCUMENT = """
Willkommen bei uns. Dieses Dokument erklärt alles, was du in deiner ersten Woche wissen musst.

Arbeitszeiten
Wir arbeiten in der Regel von 9 bis 18 Uhr, Kernzeit ist zwischen 10 und 16 Uhr.
Überstunden werden im Zeiterfassungstool eingetragen.

Kurz
Zu kurz.
"""


def test_is_heading():
    assert is_heading("Arbeitszeiten")
    assert not is_heading("Das ist ein Satz.")
    assert not is_heading("1. Laptop abholen")
    assert not is_heading("eins zwei drei vier fünf sechs sieben acht neun zehn")
    assert not is_heading("x" * 80)


def test_chunk_by_heading_groups_and_drops_small_chunks():
    chunks = chunk_by_heading(DOCUMENT)
    assert [c.heading for c in chunks] == ["Einleitung", "Arbeitszeiten"]
    assert chunks[1].content == (
        "Wir arbeiten in der Regel von 9 bis 18 Uhr, Kernzeit ist zwischen 10 und 16 Uhr. "
        "Überstunden werden im Zeiterfassungstool eingetragen."
    )


def test_numbered_items_stay_in_current_section():
    text = "Ablauf\nAm ersten Tag bekommst du eine Führung durch alle Räume im Haus.\n1. Laptop abholen"
    chunks = chunk_by_heading(text)
    assert len(chunks) == 1
    assert chunks[0].content.endswith("1. Laptop abholen")


def test_chunk_tokens_and_embedding_text():
    chunk = Chunk("Titel", "x" * 42)
    assert chunk.tokens == 10
    assert chunk.embedding_text == "Titel\n\n" + "x" * 42


def test_vector_literal():
    assert vector_literal([0.5, -1.0, 2]) == "[0.5,-1.0,2]"


def test_seed_replaces_rows_and_skips_failed_chunks(platform, recorder):
    recorder.routes[("DELETE", "/rest/v1/onboarding_embeddings")] = []
    recorder.routes[("POST", "/rest/v1/onboarding_embeddings")] = (201, [])

    def embed(text):
        if text.startswith("Kaputt"):
            raise RuntimeError("embedding failed")
        return [0.1, 0.2]

    chunks = [Chunk("Eins", "a" * 60), Chunk("Kaputt", "b" * 60), Chunk("Drei", "c" * 60)]
    sleeps = []
    stored = seed_onboarding(platform, chunks, embed, delay=0.5, sleep=sleeps.append)

    assert stored == 2
    assert sleeps == [0.5, 0.5, 0.5]
    delete = recorder.calls("DELETE", "/rest/v1/onboarding_embeddings")[0]
    assert delete.url.params["id"] == "neq.00000000-0000-0000-0000-000000000000"
    inserts = recorder.calls("POST", "/rest/v1/onboarding_embeddings")
    assert [recorder.body(r)["heading"] for r in inserts] == ["Eins", "Drei"]
    assert recorder.body(inserts[0]) == {"heading": "Eins", "content": "a" * 60, "tokens": 15, "embedding": "[0.1,0.2]"}


def test_seed_continues_when_clearing_fails(platform, recorder):
    recorder.routes[("DELETE", "/rest/v1/onboarding_embeddings")] = (403, {"message": "denied"})
    recorder.routes[("POST", "/rest/v1/onboarding_embeddings")] = (201, [])
    assert seed_onboarding(platform, [Chunk("Eins", "a" * 60)], lambda _: [1.0], delay=0) == 1


def test_main_requires_api_key(monkeypatch, tmp_path):
    doc = tmp_path / "doc.txt"
    doc.write_text(DOCUMENT, encoding="utf-8")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    monkeypatch.setattr(onboarding.Settings, "from_env", classmethod(
        lambda cls, dotenv=True: cls(platform_url="https://abcd.supabase.co", platform_anon_key="anon")
    ))
    assert onboarding.main([str(doc)]) == 1
