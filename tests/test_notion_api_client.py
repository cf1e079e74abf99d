"""Tests for the Notion REST client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from notion_api_client import NotionClient
from notion_fixtures import http_error


def json_response(data):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = data
    return response


@pytest.fixture
def session():
    session = requests.Session()
    session.request = MagicMock()
    return session


@pytest.fixture
def client(session):
    return NotionClient('secret-token', rate_limit=0, session=session)


class TestNotionClient:
    def test_requires_token(self):
        with pytest.raises(ValueError):
            NotionClient('')

    def test_headers(self, client, session):
        assert session.headers['Authorization'] == 'Bearer secret-token'
        assert session.headers['Notion-Version'] == '2022-06-28'
        assert session.headers['Content-Type'] == 'application/json'

    def test_retrieve_page(self, client, session):
        session.request.return_value = json_response({'id': 'p1'})

        assert client.retrieve_page('p1') == {'id': 'p1'}
        session.request.assert_called_once_with('GET', 'https://api.notion.com/v1/pages/p1', timeout=30)

    def test_query_database_follows_cursor(self, client, session):
        session.request.side_effect = [
            json_response({'results': [{'id': 'a'}, {'id': 'b'}], 'has_more': True, 'next_cursor': 'c1'}),
            json_response({'results': [{'id': 'c'}], 'has_more': False, 'next_cursor': None}),
        ]
        sorts = [{'timestamp': 'created_time', 'direction': 'descending'}]

        results = list(client.query_database('db-1', sorts=sorts))

        assert [r['id'] for r in results] == ['a', 'b', 'c']
        first, second = session.request.call_args_list
        assert first.args == ('POST', 'https://api.notion.com/v1/databases/db-1/query')
        assert first.kwargs['json'] == {'page_size': 100, 'sorts': sorts}
        assert second.kwargs['json'] == {'page_size': 100, 'sorts': sorts, 'start_cursor': 'c1'}

    def test_list_block_children_follows_cursor(self, client, session):
        session.request.side_effect = [
            json_response({'results': [{'id': 'b1'}], 'has_more': True, 'next_cursor': 'n2'}),
            json_response({'results': [{'id': 'b2'}], 'has_more': False}),
        ]

        children = client.list_block_children('page-1')

        assert [c['id'] for c in children] == ['b1', 'b2']
        assert session.request.call_args_list[1].kwargs['params'] == {'page_size': 100, 'start_cursor': 'n2'}

    def test_http_error_propagates(self, client, session):
        response = json_response({})
        response.raise_for_status.side_effect = http_error(404)
        session.request.return_value = response

        with pytest.raises(requests.exceptions.HTTPError):
            client.retrieve_database('db-1')

    def test_timeout_propagates(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout('slow')

        with pytest.raises(requests.exceptions.Timeout):
            client.retrieve_database('db-1')

    def test_rate_limit_sleeps_between_requests(self, session):
        client = NotionClient('token', rate_limit=0.5, session=session)

        with patch('notion_api_client.time') as mock_time:
            mock_time.time.side_effect = [100.0, 100.0, 100.1, 100.5]
            client._enforce_rate_limit()
            client._enforce_rate_limit()

        assert mock_time.sleep.call_count == 1
        assert mock_time.sleep.call_args.args[0] == pytest.approx(0.4)

    def test_own_session_gets_retry_adapter(self):
        client = NotionClient('token', max_retries=5)
        adapter = client.session.get_adapter('https://api.notion.com/v1/pages/x')
        assert adapter.max_retries.total == 5
        assert 'POST' in adapter.max_retries.allowed_methods
        client.close()
