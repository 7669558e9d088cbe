"""
tests/test_routes.py — Flask API tests.

Uses the Flask test client against temporary databases with CSRF disabled.
"""

from cell_lifecycle import BED_LOCKS
from conftest import BASIL, POTATO, TOMATO


def create_bed(client, rows=3, columns=3):
    garden = client.post('/gardens', json={'owner': 'alice', 'name': 'Home'}).get_json()['garden']
    area = client.post(f"/gardens/{garden['id']}/areas", json={'name': 'Vegetables'}).get_json()['area']
    rv = client.post(f"/areas/{area['id']}/beds",
                     json={'name': 'Bed A', 'grid_rows': rows, 'grid_columns': columns})
    assert rv.status_code == 201
    return garden, area, rv.get_json()['bed']


def cell_id(client, bed, row, column):
    cells = client.get(f"/beds/{bed['id']}/cells").get_json()['cells']
    return next(c['id'] for c in cells if (c['row'], c['column']) == (row, column))


# ========================================
# Hierarchy
# ========================================

def test_garden_crud(client):
    rv = client.post('/gardens', json={'owner': 'alice', 'name': 'Home'})
    assert rv.status_code == 201
    garden = rv.get_json()['garden']

    rv = client.put(f"/gardens/{garden['id']}", json={'location': 'Lyon'})
    assert rv.status_code == 200
    assert rv.get_json()['garden']['location'] == 'Lyon'
    assert rv.get_json()['garden']['name'] == 'Home'

    rv = client.get('/gardens?owner=alice')
    assert [g['name'] for g in rv.get_json()['gardens']] == ['Home']

    rv = client.delete(f"/gardens/{garden['id']}")
    assert rv.status_code == 200
    assert client.get(f"/gardens/{garden['id']}").status_code == 404


def test_garden_validation_error(client):
    rv = client.post('/gardens', json={'owner': 'alice'})
    assert rv.status_code == 422
    body = rv.get_json()
    assert body['success'] is False
    assert body['kind'] == 'validation_failure'
    assert "Garden name is required." in body['warnings']


def test_non_text_fields_are_bad_requests(client):
    rv = client.post('/gardens', json={'owner': 'alice', 'name': 123})
    assert rv.status_code == 400
    assert rv.get_json()['kind'] == 'bad_request'

    garden = client.post('/gardens', json={'owner': 'alice', 'name': 'Home'}).get_json()['garden']
    assert client.put(f"/gardens/{garden['id']}", json={'notes': {'a': 1}}).status_code == 400
    area = client.post(f"/gardens/{garden['id']}/areas", json={'name': 'V'}).get_json()['area']
    rv = client.post(f"/areas/{area['id']}/beds", json={'name': ['x'], 'grid_rows': 2, 'grid_columns': 2})
    assert rv.status_code == 400
    assert client.get(f"/areas/{area['id']}/beds").get_json()['beds'] == []


def test_bed_creation_provisions_cells(client):
    garden, area, bed = create_bed(client, 2, 4)
    assert bed['grid_rows'] == 2

    cells = client.get(f"/beds/{bed['id']}/cells").get_json()['cells']
    assert len(cells) == 8

    rv = client.get(f"/gardens/{garden['id']}")
    assert rv.get_json()['garden']['areas'][0]['beds'][0]['id'] == bed['id']


def test_bed_requires_grid(client):
    garden = client.post('/gardens', json={'owner': 'alice', 'name': 'Home'}).get_json()['garden']
    area = client.post(f"/gardens/{garden['id']}/areas", json={'name': 'V'}).get_json()['area']
    rv = client.post(f"/areas/{area['id']}/beds", json={'name': 'Bed'})
    assert rv.status_code == 400
    rv = client.post(f"/areas/{area['id']}/beds", json={'name': 'Bed', 'grid_rows': 'x', 'grid_columns': 2})
    assert rv.status_code == 400


def test_bed_grid_change_is_conflict(client):
    _, _, bed = create_bed(client)
    rv = client.put(f"/beds/{bed['id']}", json={'grid_rows': 5})
    assert rv.status_code == 409
    assert rv.get_json()['kind'] == 'conflict'

    rv = client.put(f"/beds/{bed['id']}", json={'name': 'Renamed'})
    assert rv.status_code == 200
    assert rv.get_json()['bed']['name'] == 'Renamed'


def test_move_bed(client):
    _, _, bed = create_bed(client)
    rv = client.post(f"/beds/{bed['id']}/move", json={'x': 3, 'y': 1.5})
    assert rv.status_code == 200
    assert (rv.get_json()['bed']['pos_x'], rv.get_json()['bed']['pos_y']) == (3.0, 1.5)
    assert client.post(f"/beds/{bed['id']}/move", json={'x': 3}).status_code == 400


def test_decorations(client):
    _, area, _ = create_bed(client)
    rv = client.post(f"/areas/{area['id']}/decorations", json={'decoration_type': 'POND', 'name': 'Pond'})
    assert rv.status_code == 201
    decoration = rv.get_json()['decoration']

    rv = client.put(f"/decorations/{decoration['id']}", json={'rotation': 90})
    assert rv.status_code == 200
    assert rv.get_json()['decoration']['name'] == 'Pond'
    assert rv.get_json()['decoration']['rotation'] == 90.0

    assert client.delete(f"/decorations/{decoration['id']}").status_code == 200
    assert client.delete(f"/decorations/{decoration['id']}").status_code == 404


def test_unknown_bed_is_404(client):
    rv = client.get('/beds/9999/cells')
    assert rv.status_code == 404
    assert rv.get_json()['kind'] == 'not_found'


def test_deleting_garden_releases_bed_locks(client):
    garden, _, bed = create_bed(client)
    client.post(f"/cells/{cell_id(client, bed, 0, 0)}/assign", json={'plant_id': TOMATO})
    assert bed['id'] in BED_LOCKS._locks

    assert client.delete(f"/gardens/{garden['id']}").status_code == 200
    assert bed['id'] not in BED_LOCKS._locks


def test_rotation_plan_routes(client):
    garden, area, bed = create_bed(client)
    other = client.post(f"/areas/{area['id']}/beds",
                        json={'name': 'Bed B', 'grid_rows': 1, 'grid_columns': 1}).get_json()['bed']

    rv = client.post(f"/gardens/{garden['id']}/rotation-plans", json={
        'plan_name': 'Spring 2025', 'season_year': '2025', 'season_type': 'SPRING',
        'groups': [
            {'group_name': 'Fruiting', 'plant_family': 'Solanaceae',
             'assigned_bed_ids': [bed['id']], 'rotation_order': 1},
            {'group_name': 'Roots', 'plant_family': 'Apiaceae',
             'assigned_bed_ids': [str(other['id'])], 'rotation_order': 2},
        ],
    })
    assert rv.status_code == 201
    plan = rv.get_json()['rotation_plan']
    assert plan['season_year'] == 2025
    assert plan['groups'][1]['assigned_bed_ids'] == [other['id']]

    rv = client.get(f"/gardens/{garden['id']}/rotation-plans")
    assert [p['id'] for p in rv.get_json()['rotation_plans']] == [plan['id']]

    rv = client.put(f"/rotation-plans/{plan['id']}", json={'notes': 'Swap next year'})
    assert rv.status_code == 200
    assert rv.get_json()['rotation_plan']['notes'] == 'Swap next year'
    assert len(rv.get_json()['rotation_plan']['groups']) == 2

    rv = client.put(f"/rotation-plans/{plan['id']}", json={'groups': []})
    assert rv.get_json()['rotation_plan']['groups'] == []

    assert client.delete(f"/rotation-plans/{plan['id']}").status_code == 200
    assert client.get(f"/rotation-plans/{plan['id']}").status_code == 404


def test_rotation_plan_route_validation(client):
    garden, _, bed = create_bed(client)
    url = f"/gardens/{garden['id']}/rotation-plans"

    assert client.post(url, json={'plan_name': 'P', 'season_year': 'soon'}).status_code == 400
    assert client.post(url, json={'plan_name': 'P', 'season_year': 2025, 'groups': 'all'}).status_code == 400
    rv = client.post(url, json={'plan_name': 'P', 'season_year': 2025,
                                'groups': [{'group_name': 'A', 'plant_family': 'Fabaceae',
                                            'assigned_bed_ids': ['x']}]})
    assert rv.status_code == 400

    rv = client.post(url, json={'plan_name': 'P', 'season_year': 2025, 'season_type': 'MONSOON'})
    assert rv.status_code == 422
    assert rv.get_json()['kind'] == 'validation_failure'

    rv = client.post(url, json={'plan_name': 'P', 'season_year': 2025,
                                'groups': [{'group_name': 'A', 'plant_family': 'Fabaceae',
                                            'assigned_bed_ids': [bed['id'] + 100]}]})
    assert rv.status_code == 422

    assert client.get('/gardens/9999/rotation-plans').status_code == 404
    assert client.post('/gardens/9999/rotation-plans',
                       json={'plan_name': 'P', 'season_year': 2025}).status_code == 404


# ========================================
# Cells
# ========================================

def test_companion_scenario_end_to_end(client):
    garden, _, bed = create_bed(client)

    rv = client.post(f"/cells/{cell_id(client, bed, 1, 1)}/assign", json={'plant_id': TOMATO})
    assert rv.status_code == 200
    assert rv.get_json()['cell']['current_plant_id'] == TOMATO

    rv = client.post(f"/cells/{cell_id(client, bed, 1, 0)}/assign", json={'plant_id': BASIL})
    assert rv.status_code == 200
    assert rv.get_json()['companion']['benefits']

    rv = client.get(f"/beds/{bed['id']}/companions?row=0&column=1&plant_id={POTATO}")
    assert rv.status_code == 200
    assert rv.get_json()['companion']['is_compatible'] is False

    potato_cell = cell_id(client, bed, 0, 1)
    rv = client.post(f"/cells/{potato_cell}/assign", json={'plant_id': POTATO})
    assert rv.status_code == 422
    assert rv.get_json()['warnings']
    assert client.get(f"/cells/{potato_cell}").get_json()['cell']['current_plant_id'] is None

    stats = client.get(f"/gardens/{garden['id']}/statistics").get_json()['statistics']
    assert stats['occupied_cells'] == 2
    assert stats['plants_by_family'] == {'Solanaceae': 1, 'Lamiaceae': 1}

    occupancy = client.get(f"/beds/{bed['id']}/occupancy").get_json()['occupancy']
    assert occupancy['occupied_cells'] == 2
    assert occupancy['empty_cells'] == 7

    occupied = client.get(f"/beds/{bed['id']}/cells?state=occupied").get_json()['cells']
    assert len(occupied) == 2


def test_assign_remove_and_history(client):
    _, _, bed = create_bed(client)
    cid = cell_id(client, bed, 0, 0)

    assert client.post(f"/cells/{cid}/assign", json={'plant_id': TOMATO}).status_code == 200
    rv = client.post(f"/cells/{cid}/assign", json={'plant_id': BASIL})
    assert rv.status_code == 409

    rv = client.post(f"/cells/{cid}/remove", json={})
    assert rv.status_code == 200
    assert rv.get_json()['cell']['current_plant_id'] is None
    assert client.post(f"/cells/{cid}/remove", json={}).status_code == 409

    history = client.get(f"/cells/{cid}/history").get_json()['history']
    assert len(history) == 1
    assert history[0]['plant_id'] == TOMATO
    assert history[0]['harvested_date'] is not None


def test_advisory_rotation_warning(client):
    _, _, bed = create_bed(client)
    cid = cell_id(client, bed, 2, 2)
    client.post(f"/cells/{cid}/assign", json={'plant_id': POTATO})
    client.post(f"/cells/{cid}/remove", json={})

    rv = client.get(f"/cells/{cid}/rotation?family=Solanaceae")
    assert rv.get_json()['rotation']['is_valid'] is False

    rv = client.post(f"/cells/{cid}/assign", json={'plant_id': TOMATO})
    assert rv.status_code == 200
    assert rv.get_json()['rotation']['is_valid'] is False
    assert rv.get_json()['warnings']


def test_strict_rotation_setting(client):
    _, _, bed = create_bed(client)
    cid = cell_id(client, bed, 2, 2)
    client.post(f"/cells/{cid}/assign", json={'plant_id': POTATO})
    client.post(f"/cells/{cid}/remove", json={})

    rv = client.post('/settings/rotation', json={'strict_mode': True})
    assert rv.status_code == 200
    assert rv.get_json()['rotation'] == {'minimum_gap_years': 2, 'strict_mode': True}

    rv = client.post(f"/cells/{cid}/assign", json={'plant_id': TOMATO})
    assert rv.status_code == 422
    assert rv.get_json()['kind'] == 'validation_failure'
    assert rv.get_json()['warnings']

    client.post('/settings/rotation', json={'minimum_gap_years': 0})
    assert client.post(f"/cells/{cid}/assign", json={'plant_id': TOMATO}).status_code == 200


def test_assign_validation(client):
    _, _, bed = create_bed(client)
    cid = cell_id(client, bed, 0, 0)
    assert client.post(f"/cells/{cid}/assign", json={}).status_code == 400
    assert client.post(f"/cells/{cid}/assign", json={'plant_id': 'plant_nope'}).status_code == 404
    assert client.post('/cells/99999/assign', json={'plant_id': TOMATO}).status_code == 404
    rv = client.post(f"/cells/{cid}/remove", json={'harvested_date': 'yesterday'})
    assert rv.status_code == 400


def test_companion_preview_validation(client):
    _, _, bed = create_bed(client)
    assert client.get(f"/beds/{bed['id']}/companions?row=0&plant_id={TOMATO}").status_code == 400
    assert client.get(f"/beds/{bed['id']}/companions?row=-1&column=0&plant_id={TOMATO}").status_code == 400
    assert client.get(f"/beds/{bed['id']}/companions?row=5&column=0&plant_id={TOMATO}").status_code == 404


# ========================================
# Catalog, settings, export
# ========================================

def test_catalog_routes(client):
    rv = client.get('/catalog/')
    assert len(rv.get_json()['plants']) == 9

    rv = client.get('/catalog/?family=Lamiaceae')
    assert [p['id'] for p in rv.get_json()['plants']] == [BASIL]

    rv = client.get(f'/catalog/{TOMATO}')
    plant = rv.get_json()['plant']
    assert plant['family'] == 'Solanaceae'
    assert BASIL in plant['companion_plant_ids']

    assert client.get('/catalog/plant_nope').status_code == 404
    assert client.get('/catalog/search?q=pota').get_json()['results'][0]['id'] == POTATO
    assert client.get('/catalog/health').get_json()['success'] is True


def test_settings_and_backups(client):
    rv = client.get('/settings/')
    body = rv.get_json()
    assert body['rotation'] == {'minimum_gap_years': 2, 'strict_mode': False}
    assert body['database']['healthy'] is True

    assert client.post('/settings/rotation', json={'minimum_gap_years': -1}).status_code == 400
    assert client.post('/settings/rotation', json={'strict_mode': 'yes'}).status_code == 400

    rv = client.post('/settings/backup/create')
    filename = rv.get_json()['filename']
    assert filename in [b['filename'] for b in client.get('/settings/backup').get_json()['backups']]

    rv = client.post('/settings/backup/restore', json={'filename': filename})
    assert rv.status_code == 200
    assert client.post('/settings/backup/restore', json={'filename': 'bogus.db'}).status_code == 400


def test_config_overrides_rotation_settings(app, client):
    app.config['ROTATION_STRICT_MODE'] = True
    app.config['ROTATION_MIN_GAP_YEARS'] = 3
    body = client.get('/settings/').get_json()
    assert body['rotation'] == {'minimum_gap_years': 3, 'strict_mode': True}


def test_export_excel(client):
    garden, _, _ = create_bed(client)
    rv = client.get(f"/export/excel/{garden['id']}")
    assert rv.status_code == 200
    assert rv.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert client.get('/export/excel/9999').status_code == 404
