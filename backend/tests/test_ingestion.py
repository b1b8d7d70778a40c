"""
Integration tests for run ingestion: thread -> parsed baseline rows.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from unittest.mock import Mock

import pytest

from raffle.services.ingestion import RunIngestionService
from raffle.services.parser import PARSER_VERSION
from raffle.services.reddit import InvalidRedditUrl, RedditComment, RedditThread

THREAD_URL = "https://www.reddit.com/r/pokemonraffles/comments/p1/charizard/"


def _thread():
    return RedditThread(
        title="[Raffle] Charizard - 40 spots @ $5",
        selftext="<raffle-tool>spots: 40</raffle-tool>",
        comments=[
            RedditComment('c1', 'Fuzzy', '3 randoms', 'https://reddit.com/c1'),
            RedditComment('c2', 'Amy', 'spot 4-6 tabbed by Fuzzy', 'https://reddit.com/c2'),
            RedditComment('c3', 'Bob', 'tab', 'https://reddit.com/c3'),
        ],
    )


@pytest.fixture
def supabase():
    client = Mock()
    client.table.return_value.insert.return_value.execute.return_value = Mock(data=[{'id': 'run-1'}])
    return client


@pytest.fixture
def service(supabase):
    reddit = Mock()
    reddit.fetch_thread.return_value = _thread()
    access = Mock()
    access.issue_code.return_value = 'AAAA-BBBB-CCCC'
    return RunIngestionService(supabase=supabase, reddit=reddit, access=access)


class TestCreateRun:

    def test_summary(self, service):
        summary = service.create_run(THREAD_URL)

        assert summary['run_id'] == 'run-1'
        assert summary['admin_code'] == 'AAAA-BBBB-CCCC'
        assert summary['share_url'].endswith('/r/run-1')
        assert summary['total_spots_from_title'] == 40
        assert summary['raffle_tool_block'] == 'spots: 40'

    def test_run_row_tagged_with_parser_version(self, service, supabase):
        service.create_run(THREAD_URL)

        run_row = supabase.table.return_value.insert.call_args_list[0][0][0]
        assert run_row['parser_version'] == PARSER_VERSION
        assert run_row['subreddit'] == 'pokemonraffles'
        assert run_row['post_id'] == 'p1'

    def test_admin_code_issued(self, service):
        service.create_run(THREAD_URL)
        service.access.issue_code.assert_called_once_with('run-1', 'admin', label='owner')

    def test_comment_rows(self, service, supabase):
        service.create_run(THREAD_URL)

        rows = supabase.table.return_value.upsert.call_args[0][0]
        by_id = {row['comment_id']: row for row in rows}

        assert by_id['c1']['spots'] == 3
        assert by_id['c1']['payer'] == 'fuzzy'
        assert by_id['c1']['post_id'] == 'p1'

        assert by_id['c2']['parsed']['specific_spots'] == [4, 5, 6]
        assert by_id['c2']['payer'] == 'fuzzy'
        assert by_id['c2']['is_tab'] is True

        assert by_id['c3']['needs_review'] is True
        assert by_id['c3']['permalink'] == 'https://reddit.com/c3'

    def test_invalid_url(self, service):
        with pytest.raises(InvalidRedditUrl):
            service.create_run("https://example.com/not-reddit")
        service.reddit.fetch_thread.assert_not_called()

    def test_run_insert_failure(self, service, supabase):
        supabase.table.return_value.insert.return_value.execute.return_value = Mock(data=[])
        with pytest.raises(RuntimeError):
            service.create_run(THREAD_URL)

    def test_comment_upsert_failure_is_logged(self, service, supabase):
        supabase.table.return_value.upsert.return_value.execute.side_effect = Exception("db down")
        summary = service.create_run(THREAD_URL)
        assert summary['run_id'] == 'run-1'


class TestGetRun:

    def test_missing_run(self, service, supabase):
        supabase.table.return_value.select.return_value.eq.return_value.limit.return_value \
            .execute.return_value = Mock(data=[])
        assert service.get_run('nope') is None

    def test_run_with_comments(self, service, supabase):
        supabase.table.return_value.select.return_value.eq.return_value.limit.return_value \
            .execute.return_value = Mock(data=[{'id': 'run-1'}])
        supabase.table.return_value.select.return_value.eq.return_value \
            .execute.return_value = Mock(data=[{'comment_id': 'c1'}])

        data = service.get_run('run-1')
        assert data['run'] == {'id': 'run-1'}
        assert data['comments'] == [{'comment_id': 'c1'}]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
