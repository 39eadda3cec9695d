from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from cropinfer.api_server import create_app
from cropinfer.models.canonical_tensor import SIDE


async def echo_half(values):
    return [0.5] * (SIDE * SIDE)


@pytest.fixture
def client():
    app = create_app(lambda: echo_half)
    app.config['TESTING'] = True
    return app.test_client()


def upload(client, data, filename="photo.png", mimetype="image/png", session_id=None):
    form = {'image': (BytesIO(data), filename, mimetype)}
    if session_id:
        form['session_id'] = session_id
    return client.post('/api/image', data=form, content_type='multipart/form-data')


def loaded_session(client, make_png, width=1000, height=500):
    resp = upload(client, make_png(width, height))
    assert resp.status_code == 200
    return resp.get_json()['session_id']


def test_health(client):
    resp = client.get('/api/health')
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'healthy'


def test_upload_reports_image_size(client, make_png):
    resp = upload(client, make_png(1000, 500))
    body = resp.get_json()
    assert body['success']
    assert body['image_size'] == [1000, 500]
    assert body['status']['kind'] == 'success'
    assert not body['inference_enabled']


def test_upload_rejects_non_image(client, make_png):
    resp = upload(client, make_png(10, 10), filename="notes.txt", mimetype="text/plain")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['status']['kind'] == 'error'
    assert not body['image_loaded']


def test_upload_without_file(client):
    resp = client.post('/api/image', data={}, content_type='multipart/form-data')
    assert resp.status_code == 400


def test_full_flow(client, make_png):
    sid = loaded_session(client, make_png)

    resp = client.post('/api/surface', json={'session_id': sid, 'container_width': 540})
    assert resp.get_json()['display_size'] == [500, 250]

    client.post('/api/selection/start', json={'session_id': sid, 'x': 100, 'y': 50})
    client.post('/api/selection/move', json={'session_id': sid, 'x': 200, 'y': 100})
    resp = client.post('/api/selection/end', json={'session_id': sid})
    body = resp.get_json()
    assert body['committed']
    assert body['has_preprocessed']
    assert body['inference_enabled']

    resp = client.get(f'/api/tensor?session_id={sid}')
    assert resp.get_json()['length'] == SIDE * SIDE

    resp = client.post('/api/inference', json={'session_id': sid})
    assert resp.status_code == 200
    assert resp.get_json()['has_result']

    resp = client.get(f'/api/surface/result?session_id={sid}')
    assert resp.status_code == 200
    assert resp.mimetype == 'image/png'
    result = np.array(PILImage.open(BytesIO(resp.data)))
    assert result.shape == (SIDE, SIDE, 4)
    assert np.all(result[..., :3] == 128)


def test_degenerate_selection_not_committed(client, make_png):
    sid = loaded_session(client, make_png)
    client.post('/api/selection/start', json={'session_id': sid, 'x': 10, 'y': 10})
    resp = client.post('/api/selection/end', json={'session_id': sid, 'x': 13, 'y': 90})
    assert not resp.get_json()['committed']
    assert not resp.get_json()['inference_enabled']


def test_inference_before_selection(client, make_png):
    sid = loaded_session(client, make_png)
    resp = client.post('/api/inference', json={'session_id': sid})
    assert resp.status_code == 400


def test_reset_empties_surfaces(client, make_png):
    sid = loaded_session(client, make_png, 300, 300)
    client.post('/api/selection/start', json={'session_id': sid, 'x': 0, 'y': 0})
    client.post('/api/selection/end', json={'session_id': sid, 'x': 100, 'y': 100})
    assert client.get(f'/api/surface/preprocessed?session_id={sid}').status_code == 200

    resp = client.post('/api/reset', json={'session_id': sid})
    assert not resp.get_json()['has_preprocessed']
    assert client.get(f'/api/surface/preprocessed?session_id={sid}').status_code == 404
    assert client.get(f'/api/surface/display?session_id={sid}').status_code == 200


def test_unknown_session(client):
    resp = client.post('/api/reset', json={'session_id': 'nope'})
    assert resp.status_code == 400


def test_unknown_surface(client, make_png):
    sid = loaded_session(client, make_png, 20, 20)
    assert client.get(f'/api/surface/bogus?session_id={sid}').status_code == 404


def test_selection_requires_coordinates(client, make_png):
    sid = loaded_session(client, make_png, 20, 20)
    resp = client.post('/api/selection/start', json={'session_id': sid})
    assert resp.status_code == 400


def test_clear_session(client, make_png):
    sid = loaded_session(client, make_png, 20, 20)
    assert client.post('/api/clear-session', json={'session_id': sid}).get_json()['success']
    assert client.post('/api/reset', json={'session_id': sid}).status_code == 400
