"""Tests for the credential resolver: ordering, caching, auto-login, concurrency."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from helpers import RecordingProvider, run
from ociauth.auth.base import FunctionProvider
from ociauth.auth.resolver import CredentialResolver
from ociauth.exceptions import (
    CredentialStoreError,
    LoginError,
    LoginNotConfiguredError,
    ProviderError,
    ResolutionCancelledError,
)
from ociauth.models import EMPTY_CREDENTIAL, Credential


class FakeLogin:
    """Stand-in auto-login handler recording the hosts it was asked about."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def login(self, host: str) -> None:
        self.calls.append(host)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


# ---------------------------------------------------------------------------
# Provider chain
# ---------------------------------------------------------------------------


class TestProviderChain:
    def test_store_empty_then_oauth_token(self) -> None:
        store = RecordingProvider("store")
        oauth = RecordingProvider("oauth", result=Credential.token("T1"))
        resolver = CredentialResolver([store, oauth])

        cred = run(resolver.resolve("reg.example.com"))

        assert cred == Credential.token("T1")
        assert cred.access_token is not None
        assert cred.access_token.get_secret_value() == "T1"
        assert resolver.cached_provider("reg.example.com") is oauth

    def test_static_credential_every_call(self) -> None:
        static = RecordingProvider("static", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([static])

        async def resolve_three() -> list[Credential]:
            return [await resolver.resolve("x.io") for _ in range(3)]

        creds = run(resolve_three())

        assert all(c == Credential.basic("u", "p") for c in creds)
        assert static.calls == ["x.io", "x.io", "x.io"]

    def test_failing_provider_leaves_cache_empty(self) -> None:
        failing = RecordingProvider("failing", error=ProviderError("disk read failed"))
        resolver = CredentialResolver([failing])

        with pytest.raises(ProviderError, match="disk read failed"):
            run(resolver.resolve("y.io"))
        assert resolver.cached_provider("y.io") is None
        assert resolver.cached_hosts() == []

    def test_order_preserved_and_stops_at_first_success(self) -> None:
        first = RecordingProvider("first")
        second = RecordingProvider("second", result=Credential.basic("a", "b"))
        third = RecordingProvider("third", result=Credential.basic("c", "d"))
        resolver = CredentialResolver([first, second, third])

        cred = run(resolver.resolve("reg.io"))

        assert cred == Credential.basic("a", "b")
        assert first.calls == ["reg.io"]
        assert second.calls == ["reg.io"]
        assert third.calls == []

    def test_error_stops_the_scan(self) -> None:
        first = RecordingProvider("first")
        broken = RecordingProvider("broken", error=CredentialStoreError("malformed"))
        last = RecordingProvider("last", result=Credential.basic("a", "b"))
        resolver = CredentialResolver([first, broken, last])

        with pytest.raises(CredentialStoreError):
            run(resolver.resolve("reg.io"))
        assert last.calls == []
        assert resolver.cached_provider("reg.io") is None

    def test_errors_propagate_unchanged(self) -> None:
        original = RuntimeError("boom")
        resolver = CredentialResolver([RecordingProvider("p", error=original)])

        with pytest.raises(RuntimeError) as excinfo:
            run(resolver.resolve("reg.io"))
        assert excinfo.value is original

    def test_all_empty_returns_anonymous(self) -> None:
        providers = [RecordingProvider("a"), RecordingProvider("b")]
        resolver = CredentialResolver(providers)

        cred = run(resolver.resolve("reg.io"))

        assert cred is EMPTY_CREDENTIAL
        assert cred.is_empty
        assert resolver.cached_provider("reg.io") is None

    def test_no_providers_returns_anonymous(self) -> None:
        assert run(CredentialResolver().resolve("reg.io")) is EMPTY_CREDENTIAL

    def test_anonymous_result_rescans_next_time(self) -> None:
        provider = RecordingProvider("a")
        resolver = CredentialResolver([provider])

        async def twice() -> None:
            await resolver.resolve("reg.io")
            await resolver.resolve("reg.io")

        run(twice())
        assert provider.calls == ["reg.io", "reg.io"]

    def test_function_provider(self) -> None:
        async def from_env(host: str) -> Credential:
            return Credential.basic("fn", host)

        provider = FunctionProvider(from_env)
        resolver = CredentialResolver([provider])

        cred = run(resolver.resolve("reg.io"))

        assert cred == Credential.basic("fn", "reg.io")
        assert provider.name == "from_env"
        assert resolver.cached_provider("reg.io") is provider

    def test_providers_property_keeps_order(self) -> None:
        a, b = RecordingProvider("a"), RecordingProvider("b")
        assert CredentialResolver([a, b]).providers == (a, b)


# ---------------------------------------------------------------------------
# Cache short-circuit
# ---------------------------------------------------------------------------


class TestCacheShortCircuit:
    def test_cached_provider_is_the_only_one_called(self) -> None:
        first = RecordingProvider("first")
        second = RecordingProvider("second", result=Credential.token("tok"))
        third = RecordingProvider("third", result=Credential.token("other"))
        resolver = CredentialResolver([first, second, third])

        async def scenario() -> None:
            await resolver.resolve("reg.io")
            await resolver.resolve("reg.io")
            await resolver.resolve("reg.io")

        run(scenario())

        assert first.calls == ["reg.io"]
        assert second.calls == ["reg.io"] * 3
        assert third.calls == []

    def test_cached_provider_error_has_no_fallback(self) -> None:
        good = RecordingProvider("good", result=Credential.basic("u", "p"))
        backup = RecordingProvider("backup", result=Credential.basic("b", "b"))
        resolver = CredentialResolver([good, backup])
        run(resolver.resolve("reg.io"))

        good.error = ProviderError("token endpoint down")
        with pytest.raises(ProviderError, match="token endpoint down"):
            run(resolver.resolve("reg.io"))
        assert backup.calls == []
        assert resolver.cached_provider("reg.io") is good

    def test_cached_provider_returning_empty_is_returned_as_is(self) -> None:
        flaky = RecordingProvider("flaky", result=Credential.basic("u", "p"))
        backup = RecordingProvider("backup", result=Credential.basic("b", "b"))
        resolver = CredentialResolver([flaky, backup])
        run(resolver.resolve("reg.io"))

        flaky.result = EMPTY_CREDENTIAL
        assert run(resolver.resolve("reg.io")) is EMPTY_CREDENTIAL
        assert backup.calls == []

    def test_cache_is_per_host(self) -> None:
        a = RecordingProvider("a", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([a])

        async def scenario() -> None:
            await resolver.resolve("one.io")
            await resolver.resolve("two.io")

        run(scenario())
        assert resolver.cached_hosts() == ["one.io", "two.io"]


# ---------------------------------------------------------------------------
# Auto-login
# ---------------------------------------------------------------------------


class TestAutoLogin:
    def test_login_runs_before_providers(self) -> None:
        order: list[str] = []

        class OrderedLogin(FakeLogin):
            async def login(self, host: str) -> None:
                order.append("login")
                await super().login(host)

        async def provider(host: str) -> Credential:
            order.append("provider")
            return Credential.basic("u", "p")

        resolver = CredentialResolver([FunctionProvider(provider)], auto_login=OrderedLogin())
        run(resolver.resolve("reg.io"))

        assert order == ["login", "provider"]

    def test_login_failure_skips_providers(self) -> None:
        login = FakeLogin(error=LoginError("bad password"))
        provider = RecordingProvider("p", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([provider], auto_login=login)

        with pytest.raises(LoginError, match="bad password"):
            run(resolver.resolve("reg.io"))
        assert provider.calls == []
        assert resolver.cached_provider("reg.io") is None

    def test_not_configured_is_fatal_too(self) -> None:
        login = FakeLogin(error=LoginNotConfiguredError("no login for reg.io"))
        provider = RecordingProvider("p", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([provider], auto_login=login)

        with pytest.raises(LoginNotConfiguredError):
            run(resolver.resolve("reg.io"))
        assert provider.calls == []

    def test_cached_host_skips_login(self) -> None:
        login = FakeLogin()
        provider = RecordingProvider("p", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([provider], auto_login=login)

        async def scenario() -> None:
            await resolver.resolve("reg.io")
            await resolver.resolve("reg.io")

        run(scenario())
        assert login.calls == ["reg.io"]

    def test_login_runs_again_while_uncached(self) -> None:
        login = FakeLogin()
        resolver = CredentialResolver([RecordingProvider("empty")], auto_login=login)

        async def scenario() -> None:
            await resolver.resolve("reg.io")
            await resolver.resolve("reg.io")

        run(scenario())
        assert login.calls == ["reg.io", "reg.io"]


# ---------------------------------------------------------------------------
# Cancellation and deadlines
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_deadline_raises_resolution_cancelled(self) -> None:
        slow = RecordingProvider("slow", result=Credential.basic("u", "p"), delay=5.0)
        after = RecordingProvider("after", result=Credential.basic("a", "b"))
        resolver = CredentialResolver([slow, after])

        with pytest.raises(ResolutionCancelledError) as excinfo:
            run(resolver.resolve("reg.io", timeout=0.05))
        assert excinfo.value.host == "reg.io"
        assert after.calls == []
        assert resolver.cached_provider("reg.io") is None

    def test_deadline_covers_login(self) -> None:
        login = FakeLogin(delay=5.0)
        provider = RecordingProvider("p", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([provider], auto_login=login)

        with pytest.raises(ResolutionCancelledError):
            run(resolver.resolve("reg.io", timeout=0.05))
        assert provider.calls == []

    def test_provider_timeout_error_is_not_converted(self) -> None:
        resolver = CredentialResolver([RecordingProvider("p", error=TimeoutError("socket"))])

        with pytest.raises(TimeoutError) as excinfo:
            run(resolver.resolve("reg.io", timeout=10))
        assert not isinstance(excinfo.value, ResolutionCancelledError)

    def test_task_cancellation_propagates(self) -> None:
        slow = RecordingProvider("slow", result=Credential.basic("u", "p"), delay=5.0)
        resolver = CredentialResolver([slow])

        async def scenario() -> None:
            task = asyncio.create_task(resolver.resolve("reg.io"))
            await asyncio.sleep(0.01)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            run(scenario())
        assert resolver.cached_provider("reg.io") is None

    def test_completes_within_deadline(self) -> None:
        provider = RecordingProvider("p", result=Credential.basic("u", "p"), delay=0.01)
        resolver = CredentialResolver([provider])
        assert run(resolver.resolve("reg.io", timeout=5)) == Credential.basic("u", "p")


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_many_tasks_many_hosts(self) -> None:
        hosts = [f"reg{i}.example.com" for i in range(8)]
        empty = RecordingProvider("empty", delay=0.001)
        winner = RecordingProvider("winner", result=Credential.token("tok"), delay=0.001)
        resolver = CredentialResolver([empty, winner])

        async def scenario() -> list[Credential]:
            calls = [resolver.resolve(host) for host in hosts for _ in range(10)]
            return await asyncio.gather(*calls)

        creds = run(scenario())

        assert all(c == Credential.token("tok") for c in creds)
        assert resolver.cached_hosts() == sorted(hosts)
        assert all(resolver.cached_provider(h) is winner for h in hosts)
        # First lookups of a host are serialized, so each host is scanned once.
        assert sorted(empty.calls) == sorted(hosts)

    def test_concurrent_first_lookups_share_one_login(self) -> None:
        login = FakeLogin(delay=0.01)
        provider = RecordingProvider("p", result=Credential.basic("u", "p"))
        resolver = CredentialResolver([provider], auto_login=login)

        async def scenario() -> None:
            await asyncio.gather(*(resolver.resolve("reg.io") for _ in range(5)))

        run(scenario())
        assert login.calls == ["reg.io"]
        assert len(provider.calls) == 5

    def test_failed_first_lookup_lets_waiters_rescan(self) -> None:
        provider = RecordingProvider("p", error=ProviderError("down"), delay=0.01)
        resolver = CredentialResolver([provider])

        async def scenario() -> list[object]:
            return await asyncio.gather(
                *(resolver.resolve("reg.io") for _ in range(3)), return_exceptions=True
            )

        results = run(scenario())
        assert all(isinstance(r, ProviderError) for r in results)
        assert len(provider.calls) == 3
        assert resolver.cached_hosts() == []
