import asyncio

import pytest
import yaml
from pydantic import ValidationError

from configstore_lib.config import (
    ConnectionDescriptor,
    StaticConfigurationProvider,
    YamlConfigurationProvider,
    default_parameters,
)
from configstore_lib.config.provider import BaseConfigurationProvider


class Recorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, stale, fresh):
        self.calls.append((stale, fresh))


def test_default_parameters():
    d = default_parameters('RedisConfigurationStorage')
    assert d.port == 6379
    assert d.host == '127.0.0.1'
    assert d.password is None
    assert d.channel == 'RedisConfigurationStorage:changed'


def test_descriptor_is_immutable_and_hides_password():
    d = ConnectionDescriptor(password='s3cret', channel='c')
    with pytest.raises(ValidationError):
        d.port = 1
    assert 's3cret' not in repr(d)


def test_static_provider_pushes_initial_and_updates():
    rec = Recorder()
    provider = StaticConfigurationProvider(host='redis.local')

    async def scenario():
        await provider.register(default_parameters('X'), rec)
        await provider.update(port=6380)
        await provider.withdraw()

    asyncio.run(scenario())
    (s0, f0), (s1, f1), (s2, f2) = rec.calls
    assert s0 is None and f0.host == 'redis.local' and f0.channel == 'X:changed'
    assert s1 == f0 and f1.port == 6380 and f1.host == 'redis.local'
    assert s2 == f1 and f2 is None
    assert provider.defaults == default_parameters('X')


def test_static_provider_pushes_even_when_unchanged():
    rec = Recorder()
    provider = StaticConfigurationProvider()

    async def scenario():
        await provider.register(default_parameters('X'), rec)
        await provider.update()

    asyncio.run(scenario())
    assert len(rec.calls) == 2
    assert rec.calls[1][0] == rec.calls[1][1]


def test_push_before_register_is_an_error():
    with pytest.raises(RuntimeError):
        asyncio.run(StaticConfigurationProvider().update(port=1))


def test_base_provider_is_abstract():
    with pytest.raises(TypeError):
        BaseConfigurationProvider()


def test_reload_before_register_is_an_error(tmp_path):
    with pytest.raises(RuntimeError):
        asyncio.run(YamlConfigurationProvider(tmp_path / 'redis.yml').reload())


def test_failed_push_is_pushed_again_on_reload(tmp_path):
    path = tmp_path / 'redis.yml'
    path.write_text(yaml.safe_dump({'redis': {'host': '10.0.0.1'}}))
    attempts = []

    async def on_change(stale, fresh):
        attempts.append((stale, fresh))
        if len(attempts) == 1:
            raise ConnectionError('Connection refused')

    provider = YamlConfigurationProvider(path)

    async def scenario():
        with pytest.raises(ConnectionError):
            await provider.register(default_parameters('X'), on_change)
        assert provider.current is None
        assert await provider.reload() is True
        assert await provider.reload() is False

    asyncio.run(scenario())
    assert len(attempts) == 2
    assert attempts[1][0] is None and attempts[1][1].host == '10.0.0.1'
    assert provider.current == attempts[1][1]


def test_yaml_provider_missing_file_uses_defaults(tmp_path):
    rec = Recorder()
    provider = YamlConfigurationProvider(tmp_path / 'redis.yml')
    asyncio.run(provider.register(default_parameters('X'), rec))
    assert rec.calls == [(None, default_parameters('X'))]


def test_yaml_provider_reads_section_and_reloads_on_change(tmp_path):
    path = tmp_path / 'redis.yml'
    path.write_text(yaml.safe_dump({'redis': {'host': '10.0.0.1', 'password': 'pw'}, 'log_level': 'INFO'}))
    rec = Recorder()
    provider = YamlConfigurationProvider(path)

    async def scenario():
        await provider.register(default_parameters('X'), rec)
        assert await provider.reload() is False
        path.write_text(yaml.safe_dump({'redis': {'host': '10.0.0.2'}}))
        assert await provider.reload() is True

    asyncio.run(scenario())
    assert len(rec.calls) == 2
    first = rec.calls[0][1]
    assert first.host == '10.0.0.1' and first.password == 'pw' and first.port == 6379
    stale, fresh = rec.calls[1]
    assert stale == first
    assert fresh.host == '10.0.0.2' and fresh.password is None


@pytest.mark.parametrize('content', ['- a\n- b\n', 'redis: [1, 2]\n', 'redis: {port: [\n'])
def test_yaml_provider_rejects_invalid_files(tmp_path, content):
    path = tmp_path / 'redis.yml'
    path.write_text(content)
    provider = YamlConfigurationProvider(path)
    with pytest.raises(ValueError):
        asyncio.run(provider.register(default_parameters('X'), Recorder()))
