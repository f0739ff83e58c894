import pytest
from unittest.mock import AsyncMock, MagicMock

from telegram.constants import ParseMode
from telegram.error import NetworkError, TimedOut

from services.telegram_notifier import TelegramNotifier


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()
    return bot


@pytest.mark.asyncio
async def test_send_delivers_html_message(mock_bot):
    notifier = TelegramNotifier('token', '12345', bot=mock_bot)

    assert await notifier.send('<b>hello</b>') is True

    mock_bot.send_message.assert_awaited_once()
    kwargs = mock_bot.send_message.call_args.kwargs
    assert kwargs['chat_id'] == '12345'
    assert kwargs['text'] == '<b>hello</b>'
    assert kwargs['parse_mode'] == ParseMode.HTML


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [TimedOut(), NetworkError('bad gateway')])
async def test_delivery_failure_returns_false(mock_bot, error):
    mock_bot.send_message.side_effect = error
    notifier = TelegramNotifier('token', '12345', bot=mock_bot)

    assert await notifier.send('hello') is False


@pytest.mark.asyncio
async def test_dry_run_prints_instead_of_sending(capsys):
    notifier = TelegramNotifier(None, None, dry_run=True)

    assert await notifier.send('test alert') is True
    assert 'test alert' in capsys.readouterr().out


def test_credentials_required_without_dry_run():
    with pytest.raises(ValueError):
        TelegramNotifier(None, '123')


@pytest.mark.asyncio
async def test_close_shuts_down_bot(mock_bot):
    notifier = TelegramNotifier('token', '12345', bot=mock_bot)
    await notifier.close()
    mock_bot.shutdown.assert_awaited_once()
