import threading
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from library_backend.core.errors import ValidationError
from library_backend.database import Base
from library_backend.models.book_search import BookSearch
from library_backend.routes import search_stats_routes
from library_backend.routes.search_stats_routes import clear_search_history, get_most_searched, track_search


def test_track_search_twice_keeps_one_record_with_count_two(db_session) -> None:
    track_search(db_session, 'Dune')
    record = track_search(db_session, 'Dune')

    assert record.search_count == 2
    assert db_session.query(BookSearch).filter(BookSearch.title == 'Dune').count() == 1


def test_track_search_trims_title_but_keeps_case(db_session) -> None:
    track_search(db_session, '  Dune  ')
    track_search(db_session, 'dune')

    counts = {record.title: record.search_count for record in db_session.query(BookSearch).all()}
    assert counts == {'Dune': 1, 'dune': 1}


def test_track_search_refreshes_last_searched_timestamp(db_session) -> None:
    first = datetime(2026, 1, 5, 9, 0)
    second = datetime(2026, 1, 6, 9, 0)

    track_search(db_session, 'Dune', now=first)
    record = track_search(db_session, 'Dune', now=second)

    assert record.last_searched_at == second
    assert record.created_at == first


@pytest.mark.parametrize('title', [None, '', '    '])
def test_track_search_rejects_blank_title(db_session, title) -> None:
    with pytest.raises(ValidationError) as exception_info:
        track_search(db_session, title)

    assert exception_info.value.message == 'Book title is required'
    assert db_session.query(BookSearch).count() == 0


def test_track_search_without_native_upsert_still_counts(db_session, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(search_stats_routes, '_upsert_statement', lambda *args: None)

    track_search(db_session, 'Dune')
    record = track_search(db_session, 'Dune')

    assert record.search_count == 2
    assert db_session.query(BookSearch).count() == 1


def test_most_searched_orders_by_count_then_recency(db_session) -> None:
    for _ in range(3):
        track_search(db_session, 'Three', now=datetime(2026, 1, 1, 9, 0))
    for _ in range(5):
        track_search(db_session, 'Five', now=datetime(2026, 1, 1, 9, 0))
    track_search(db_session, 'Old One', now=datetime(2026, 1, 1, 9, 0))
    track_search(db_session, 'New One', now=datetime(2026, 1, 2, 9, 0))

    ranked = [(record.title, record.search_count) for record in get_most_searched(db_session)]

    assert ranked == [('Five', 5), ('Three', 3), ('New One', 1), ('Old One', 1)]


def test_most_searched_defaults_to_twenty_records(db_session) -> None:
    for index in range(25):
        track_search(db_session, f'Title {index}')

    assert len(get_most_searched(db_session)) == 20


def test_clear_search_history_returns_removed_count(db_session) -> None:
    track_search(db_session, 'Dune')
    track_search(db_session, 'Emma')

    assert clear_search_history(db_session) == 2
    assert db_session.query(BookSearch).count() == 0


def test_track_search_route_reports_title_and_count(client) -> None:
    client.post('/search-stats/track-search', json={'title': 'Dune'})
    response = client.post('/search-stats/track-search', json={'title': ' Dune '})

    assert response.status_code == 200
    assert response.json() == {
        'success': True,
        'message': 'Search tracked successfully',
        'title': 'Dune',
        'search_count': 2,
    }


def test_track_search_route_rejects_missing_title(client) -> None:
    response = client.post('/search-stats/track-search', json={})

    assert response.status_code == 400
    assert response.json()['errors'] == [{'field': 'title', 'message': 'Book title is required'}]


def test_most_searched_route_is_public(client) -> None:
    client.post('/search-stats/track-search', json={'title': 'Dune'})

    response = client.get('/search-stats/most-searched')

    assert response.status_code == 200
    records = response.json()
    assert [(record['title'], record['search_count']) for record in records] == [('Dune', 1)]
    assert records[0]['last_searched_at']


def test_clear_history_route_for_librarian(client, librarian_headers) -> None:
    client.post('/search-stats/track-search', json={'title': 'Dune'})

    response = client.delete('/search-stats/clear-history', headers=librarian_headers)

    assert response.status_code == 200
    assert response.json() == {
        'success': True,
        'message': 'Search history cleared successfully',
        'deletedCount': 1,
    }
    assert client.get('/search-stats/most-searched').json() == []


def test_concurrent_tracking_never_loses_an_increment(tmp_path) -> None:
    engine = create_engine(f'sqlite:///{tmp_path / "searches.db"}', connect_args={'check_same_thread': False})
    Base.metadata.create_all(bind=engine, tables=[BookSearch.__table__])
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    start = threading.Barrier(4)

    def search_dune() -> None:
        db = session_factory()
        try:
            start.wait()
            for _ in range(5):
                track_search(db, 'Dune')
        finally:
            db.close()

    threads = [threading.Thread(target=search_dune) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    db = session_factory()
    try:
        records = db.query(BookSearch).all()
    finally:
        db.close()
        engine.dispose()

    assert [(record.title, record.search_count) for record in records] == [('Dune', 20)]


def test_track_search_rejects_overlong_title(client, db_session) -> None:
    response = client.post('/search-stats/track-search', json={'title': 'x' * 256})

    assert response.status_code == 400
    assert response.json()['errors'] == [{'field': 'title', 'message': 'Title must be 255 characters or fewer.'}]
    assert db_session.query(BookSearch).count() == 0


def test_track_search_accepts_title_at_column_limit(db_session) -> None:
    assert track_search(db_session, 'x' * 255).search_count == 1
