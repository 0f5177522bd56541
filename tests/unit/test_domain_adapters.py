from jobcopilot.browser.domain_adapters import detect_adapter


def test_detect_adapter_linkedin() -> None:
    adapter = detect_adapter("https://www.linkedin.com/jobs/view/123456")
    assert adapter.name == "linkedin"
    assert "Easy Apply" in adapter.hint


def test_detect_adapter_ats_domains_and_generic() -> None:
    assert detect_adapter("https://boards.greenhouse.io/acme/jobs/1").name == "greenhouse"
    assert detect_adapter("https://jobs.lever.co/acme/1").name == "lever"
    assert detect_adapter("https://apply.workable.com/acme/j/ABC123").name == "workable"
    assert detect_adapter("https://jobs.smartrecruiters.com/Acme/123").name == "smartrecruiters"
    assert detect_adapter("https://example.com/jobs/1").name == "generic"


def test_greenhouse_hint_mentions_upload_and_consent() -> None:
    hint = detect_adapter("https://boards.greenhouse.io/acme/jobs/1").hint
    assert "upload" in hint
    assert "consent" in hint
