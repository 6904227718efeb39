"""
tests/test_dispatcher.py

Pytest unit tests for IndexingDispatcher.

No database and no network: credentials, token exchange and the Google APIs
are in-memory fakes from tests/fakes.py.

Coverage
--------
- Round-robin distribution across healthy credentials
- Single credential hitting its cap inside one batch
- Mid-batch exhaustion rerouting to the remaining credential
- Exactly one fallback call per quota signal
- Non-quota failures recorded without retry or exhaustion
- Authorization drops, empty pools, invalid input
- Scope and cap per operation, call pacing
"""

from __future__ import annotations

import dataclasses
import uuid
from collections import Counter

import pytest

from app.config import IndexingSettings
from app.domain.indexing import (
    ALL_CONNECTIONS_EXHAUSTED,
    BATCH_CAPACITY_EXCEEDED,
    RequestType,
    TokenScope,
)
from app.services.credential_pool import (
    CredentialPool,
    CredentialsNotConfiguredError,
    NoAuthorizedCredentialsError,
)
from app.services.dispatcher import IndexingDispatcher, normalize_urls
from db.models.indexing_request import OperationType, OutcomeStatus
from tests.fakes import (
    FakeCredentialSource,
    FakeTokenExchanger,
    ListRecorder,
    ScriptedGoogleAPI,
    make_credentials,
)


def _urls(count: int) -> list[str]:
    return [f"https://example.com/page-{index}" for index in range(count)]


class Harness:
    def __init__(
        self,
        *,
        project_id: uuid.UUID,
        settings: IndexingSettings,
        credential_count: int,
        api: ScriptedGoogleAPI | None = None,
        failing_auth: set[str] | None = None,
    ) -> None:
        self.project_id = project_id
        self.credentials = make_credentials(credential_count)
        self.emails = [credential.client_email for credential in self.credentials]
        self.api = api or ScriptedGoogleAPI()
        self.exchanger = FakeTokenExchanger(failing=failing_auth)
        self.sleeps: list[float] = []
        pool = CredentialPool(
            source=FakeCredentialSource({project_id: self.credentials}),
            token_exchanger=self.exchanger,
        )
        self.dispatcher = IndexingDispatcher(
            credential_pool=pool,
            submit_client=self.api,
            inspect_client=self.api,
            settings=settings,
            sleep=self.sleeps.append,
            monotonic=lambda: 100.0,
        )
        self.recorder = ListRecorder()

    def submit(self, urls: list[str], **kwargs):
        return self.dispatcher.submit(
            project_id=self.project_id,
            urls=urls,
            recorder=self.recorder,
            **kwargs,
        )

    def inspect(self, urls: list[str]):
        return self.dispatcher.inspect(project_id=self.project_id, urls=urls, recorder=self.recorder)


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------


class TestRoundRobin:
    def test_three_credentials_share_450_urls_evenly(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=3)

        summary = harness.submit(_urls(450))

        assert summary.succeeded == 450
        assert summary.failed == 0
        assert summary.quota_exhausted == 0
        assert harness.api.calls_by_credential() == {email: 150 for email in harness.emails}
        assert summary.credentials_used == {email: 150 for email in harness.emails}

    def test_calls_follow_credential_order(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=3)

        harness.submit(_urls(9))

        called = [email for email, _ in harness.api.calls]
        assert called == [harness.emails[index % 3] for index in range(9)]

    @pytest.mark.parametrize("credential_count, url_count", [(1, 5), (2, 7), (4, 13)])
    def test_credential_of_url_i_is_i_modulo_n(self, project_id, settings, credential_count, url_count) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=credential_count)

        summary = harness.submit(_urls(url_count))

        for index, outcome in enumerate(summary.results):
            assert outcome.credential_email == harness.emails[index % credential_count]

    def test_never_exceeds_cap_per_credential(self, project_id, settings) -> None:
        capped = dataclasses.replace(settings, submit_daily_cap=200)
        harness = Harness(project_id=project_id, settings=capped, credential_count=3)

        summary = harness.submit(_urls(600))

        assert max(summary.credentials_used.values()) == 200
        assert summary.succeeded == 600


# ---------------------------------------------------------------------------
# Exhaustion
# ---------------------------------------------------------------------------


class TestExhaustion:
    def test_single_credential_cap_reached_inside_batch(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=1)

        summary = harness.submit(_urls(210))

        statuses = [outcome.status for outcome in summary.results]
        assert statuses == [OutcomeStatus.SUCCESS] * 200 + [OutcomeStatus.QUOTA_EXHAUSTED] * 10
        assert len(harness.api.calls) == 200
        assert summary.not_submitted == _urls(210)[200:]
        assert {outcome.fail_reason for outcome in summary.results[200:]} == {BATCH_CAPACITY_EXCEEDED}

    def test_provider_quota_signal_stops_further_calls(self, project_id, settings) -> None:
        roomy = dataclasses.replace(settings, submit_daily_cap=300)
        (email,) = [credential.client_email for credential in make_credentials(1)]
        api = ScriptedGoogleAPI(quota_after={email: 200})
        harness = Harness(project_id=project_id, settings=roomy, credential_count=1, api=api)

        summary = harness.submit(_urls(210))

        assert summary.succeeded == 200
        assert summary.quota_exhausted == 10
        assert len(api.calls) == 201
        assert summary.results[200].response_code == 429
        assert summary.results[200].credential_email == email
        assert {outcome.fail_reason for outcome in summary.results[201:]} == {ALL_CONNECTIONS_EXHAUSTED}
        assert all(outcome.credential_email is None for outcome in summary.results[201:])
        assert summary.not_submitted == []

    def test_mid_batch_exhaustion_reroutes_to_remaining_credential(self, project_id, settings) -> None:
        first, second = [credential.client_email for credential in make_credentials(2)]
        api = ScriptedGoogleAPI(quota_after={first: 25})
        harness = Harness(project_id=project_id, settings=settings, credential_count=2, api=api)

        summary = harness.submit(_urls(100))

        assert summary.failed == 0
        assert summary.quota_exhausted == 0
        assert summary.succeeded == 100
        assert [outcome.credential_email for outcome in summary.results[50:]] == [second] * 50
        first_calls = [url for email, url in api.calls if email == first]
        assert len(first_calls) == 26
        assert summary.credentials_used == {first: 25, second: 75}

    def test_exhausted_credential_is_never_called_again(self, project_id, settings) -> None:
        first, _, _ = [credential.client_email for credential in make_credentials(3)]
        api = ScriptedGoogleAPI(quota_after={first: 3})
        harness = Harness(project_id=project_id, settings=settings, credential_count=3, api=api)

        harness.submit(_urls(60))

        called = [email for email, _ in api.calls]
        last_first_call = max(position for position, email in enumerate(called) if email == first)
        assert Counter(called)[first] == 4
        assert first not in called[last_first_call + 1 :]

    def test_fallback_is_attempted_exactly_once(self, project_id, settings) -> None:
        emails = [credential.client_email for credential in make_credentials(3)]
        api = ScriptedGoogleAPI(quota_after={email: 0 for email in emails})
        harness = Harness(project_id=project_id, settings=settings, credential_count=3, api=api)

        summary = harness.submit(_urls(3))

        assert api.calls[:2] == [(emails[0], _urls(1)[0]), (emails[1], _urls(1)[0])]
        assert summary.results[0].status == OutcomeStatus.QUOTA_EXHAUSTED
        assert summary.results[0].credential_email == emails[1]
        assert api.calls[2] == (emails[2], _urls(2)[1])
        assert len(api.calls) == 3
        assert summary.quota_exhausted == 3
        assert summary.results[2].fail_reason == ALL_CONNECTIONS_EXHAUSTED

    def test_fallback_success_is_credited_to_fallback(self, project_id, settings) -> None:
        first, second = [credential.client_email for credential in make_credentials(2)]
        api = ScriptedGoogleAPI(quota_after={first: 0})
        harness = Harness(project_id=project_id, settings=settings, credential_count=2, api=api)

        summary = harness.submit(_urls(1))

        assert summary.results[0].status == OutcomeStatus.SUCCESS
        assert summary.results[0].credential_email == second
        assert summary.credentials_used == {first: 0, second: 1}


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_other_errors_are_not_retried(self, project_id, settings) -> None:
        url = _urls(1)[0]
        api = ScriptedGoogleAPI(failures={url: (403, "Permission denied. Failed to verify the URL ownership.")})
        harness = Harness(project_id=project_id, settings=settings, credential_count=2, api=api)

        summary = harness.submit([url, "https://example.com/ok"])

        failed = summary.results[0]
        assert failed.status == OutcomeStatus.FAILED
        assert failed.response_code == 403
        assert "ownership" in failed.fail_reason
        assert len(api.calls) == 2
        assert summary.results[1].status == OutcomeStatus.SUCCESS
        assert summary.credentials_used[harness.emails[0]] == 0

    def test_failed_call_does_not_exhaust_credential(self, project_id, settings) -> None:
        failing = _urls(3)
        api = ScriptedGoogleAPI(failures={url: (500, "Internal error") for url in failing})
        harness = Harness(project_id=project_id, settings=settings, credential_count=1, api=api)

        summary = harness.submit([*failing, "https://example.com/after"])

        assert summary.failed == 3
        assert summary.results[3].status == OutcomeStatus.SUCCESS

    def test_transport_error_becomes_failed_outcome(self, project_id, settings) -> None:
        url = _urls(1)[0]
        api = ScriptedGoogleAPI(transport_errors={url})
        harness = Harness(project_id=project_id, settings=settings, credential_count=1, api=api)

        summary = harness.submit([url])

        assert summary.results[0].status == OutcomeStatus.FAILED
        assert "timed out" in summary.results[0].fail_reason
        assert summary.results[0].response_code is None

    def test_failed_authorization_drops_only_that_credential(self, project_id, settings) -> None:
        emails = [credential.client_email for credential in make_credentials(3)]
        harness = Harness(
            project_id=project_id,
            settings=settings,
            credential_count=3,
            failing_auth={emails[1]},
        )

        summary = harness.submit(_urls(4))

        assert summary.dropped_credentials == [emails[1]]
        assert [email for email, _ in harness.api.calls] == [emails[0], emails[2], emails[0], emails[2]]
        assert emails[1] not in summary.credentials_used

    def test_all_authorizations_failing_raises_before_any_call(self, project_id, settings) -> None:
        emails = {credential.client_email for credential in make_credentials(2)}
        harness = Harness(project_id=project_id, settings=settings, credential_count=2, failing_auth=emails)

        with pytest.raises(NoAuthorizedCredentialsError):
            harness.submit(_urls(3))
        assert harness.api.calls == []
        assert harness.recorder.outcomes == []

    def test_project_without_credentials_raises(self, settings) -> None:
        harness = Harness(project_id=uuid.uuid4(), settings=settings, credential_count=1)

        with pytest.raises(CredentialsNotConfiguredError):
            harness.dispatcher.submit(project_id=uuid.uuid4(), urls=_urls(1), recorder=harness.recorder)


# ---------------------------------------------------------------------------
# Input handling, scopes and pacing
# ---------------------------------------------------------------------------


class TestInputsAndOperations:
    def test_rejects_unknown_request_type(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=1)
        with pytest.raises(ValueError):
            harness.submit(_urls(1), request_type="URL_REFRESHED")

    def test_rejects_blank_batch(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=1)
        with pytest.raises(ValueError):
            harness.submit(["", "   "])

    def test_normalize_urls_strips_and_dedupes(self) -> None:
        assert normalize_urls([" https://a/ ", "https://b/", "https://a/", ""]) == ["https://a/", "https://b/"]

    def test_recorder_sees_every_outcome_in_order(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=1)

        summary = harness.submit(_urls(5), request_type=RequestType.URL_DELETED)

        assert harness.recorder.outcomes == summary.results
        assert {outcome.request_type for outcome in summary.results} == {RequestType.URL_DELETED}
        assert {outcome.operation for outcome in summary.results} == {OperationType.SUBMIT}

    def test_submit_uses_indexing_scope(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=2)
        harness.submit(_urls(1))
        assert {scope for _, scope in harness.exchanger.requests} == {TokenScope.SUBMIT}

    def test_inspect_uses_read_only_scope_and_site_url(self, project_id, settings) -> None:
        harness = Harness(project_id=project_id, settings=settings, credential_count=2)

        summary = harness.inspect(_urls(2))

        assert {scope for _, scope in harness.exchanger.requests} == {TokenScope.INSPECT}
        assert harness.api.inspect_sites == ["sc-domain:example.com"] * 2
        assert summary.operation == OperationType.INSPECT
        assert summary.results[0].inspection is not None
        assert summary.results[0].request_type is None

    def test_inspect_uses_its_own_cap(self, project_id, settings) -> None:
        capped = dataclasses.replace(settings, submit_daily_cap=1, inspect_daily_cap=3)
        harness = Harness(project_id=project_id, settings=capped, credential_count=1)

        summary = harness.inspect(_urls(4))

        assert summary.succeeded == 3
        assert summary.not_submitted == [_urls(4)[3]]

    def test_calls_are_paced(self, project_id, settings) -> None:
        paced = dataclasses.replace(settings, submit_pacing_seconds=0.15)
        harness = Harness(project_id=project_id, settings=paced, credential_count=2)

        harness.submit(_urls(4))

        assert harness.sleeps == pytest.approx([0.15, 0.15, 0.15])

    def test_fallback_call_is_paced_too(self, project_id, settings) -> None:
        paced = dataclasses.replace(settings, submit_pacing_seconds=0.2)
        first = make_credentials(1)[0].client_email
        api = ScriptedGoogleAPI(quota_after={first: 0})
        harness = Harness(project_id=project_id, settings=paced, credential_count=2, api=api)

        harness.submit(_urls(1))

        assert len(api.calls) == 2
        assert harness.sleeps == pytest.approx([0.2])
