"""End-to-end tests through the HTTP routes."""


def test_startup_syncs_default_datasets(client):
    response = client.get('/datasets')
    assert response.status_code == 200
    ids = {d['id'] for d in response.get_json()}
    assert {'people', 'meetings', 'todos', 'metrics'} <= ids


def test_record_lifecycle(client):
    created = client.post('/datasets/todos/records', json={'title': 'Buy milk', 'deadline': '2024-01-01'})
    assert created.status_code == 201
    record = created.get_json()

    fetched = client.get(f"/records/{record['id']}")
    assert fetched.get_json()['title'] == 'Buy milk'

    updated = client.put(f"/records/{record['id']}", json={'title': 'Buy oat milk'})
    assert updated.get_json()['title'] == 'Buy oat milk'

    deleted = client.delete(f"/records/{record['id']}")
    assert deleted.status_code == 200
    assert deleted.get_json()['id'] == record['id']

    missing = client.get(f"/records/{record['id']}")
    assert missing.status_code == 404
    assert missing.get_json()['kind'] == 'not-found'


def test_cascade_from_people_to_meetings(client):
    person = client.post('/datasets/people/records', json={'name': 'Ada'}).get_json()
    client.post('/datasets/meetings/records', json={'person_id': person['id'], 'meeting_date': '2024-05-01'})

    resolved = client.get('/datasets/meetings/records?relations=1').get_json()
    assert resolved[0]['person_id_data']['name'] == 'Ada'

    assert client.delete(f"/records/{person['id']}").status_code == 200
    assert client.get('/datasets/meetings/records').get_json() == []


def test_prevent_delete_maps_to_conflict(client):
    category = client.post('/datasets/metric_categories/records', json={'name': 'Health'}).get_json()
    client.post('/datasets/metrics/records', json={'name': 'Sleep', 'category_id': category['id']})

    response = client.delete(f"/records/{category['id']}")
    assert response.status_code == 409
    assert response.get_json()['kind'] == 'constraint-violation'


def test_unique_violation_maps_to_conflict(client):
    assert client.post('/datasets/metric_categories/records', json={'name': 'Health'}).status_code == 201
    response = client.post('/datasets/metric_categories/records', json={'name': 'Health'})
    assert response.status_code == 409
    assert 'Health' in response.get_json()['error']


def test_import_and_duplicates(client):
    response = client.post('/datasets/todos/import', json=[
        {'title': 'Buy milk', 'deadline': '2024-01-01'},
        {'title': 'Call mom', 'deadline': '2024-01-02'},
    ])
    assert response.get_json() == {'imported': 2}

    response = client.post('/datasets/todos/duplicates', json={
        'records': [{'title': 'Buy milk', 'deadline': '2024-01-01'}],
        'fields': ['title', 'deadline'],
    })
    [result] = response.get_json()
    assert result['confidence'] == 1.0
    assert result['duplicateFields'] == ['title', 'deadline']


def test_dataset_management(client):
    response = client.post('/datasets', json={
        'id': 'books',
        'name': 'Books',
        'type': 'custom',
        'fields': [{'key': 'isbn', 'type': 'text', 'displayName': 'ISBN', 'isUnique': True}],
    })
    assert response.status_code == 201
    assert client.get('/datasets/books').get_json()['fields'][0]['isUnique'] is True

    response = client.put('/datasets/books', json={'name': 'Library'})
    assert response.get_json()['name'] == 'Library'

    assert client.delete('/datasets/books').status_code == 200
    assert client.get('/datasets/books').status_code == 404


def test_bad_requests(client):
    assert client.post('/datasets/todos/records', data='nope', content_type='application/json').status_code == 400
    bad_fields = client.post('/datasets', json={
        'name': 'Bad', 'type': 'custom',
        'fields': [{'key': 'x', 'type': 'text', 'isRelation': True, 'relatedDataset': 'todos',
                    'relatedField': 'id', 'preventDeleteIfReferenced': True, 'cascadeDeleteIfReferenced': True}],
    })
    assert bad_fields.status_code == 400
    assert bad_fields.get_json()['kind'] == 'validation'
    assert client.post('/datasets/nope/records', json={'a': 1}).status_code == 404


def test_wrong_body_shape_is_bad_request(client):
    response = client.post('/datasets', json=['not', 'an', 'object'])
    assert response.status_code == 400
    assert response.get_json()['kind'] == 'malformed-payload'
    assert client.post('/datasets/todos/import', json={'title': 'x'}).status_code == 400
