from models import db, Farmer, Harvest, InventoryItem, SeedlingDistribution, SalesReport
from tests.conftest import auth_header, create_farmer, create_buyer, token_for


def submit_harvest(client, token, **overrides):
    body = {'harvest_date': '2026-09-01', 'dry_fiber_output_kg': 120, 'fiber_grade': 'S2'}
    body.update(overrides)
    return client.post('/api/harvests', headers=auth_header(token), json=body)


class TestHarvests:
    def test_farmer_submits_harvest(self, client, farmer_token):
        response = submit_harvest(client, farmer_token)

        assert response.status_code == 201
        harvest = response.get_json()['harvest']
        assert harvest['status'] == 'Pending Verification'
        assert harvest['municipality'] == 'Culiram'
        assert harvest['abaca_variety'] == 'Inosa'
        assert harvest['farmer_name'] == 'Juan Dela Cruz'

    def test_invalid_harvest(self, client, farmer_token):
        assert submit_harvest(client, farmer_token, dry_fiber_output_kg=0).status_code == 400
        assert submit_harvest(client, farmer_token, harvest_date='').status_code == 400
        assert submit_harvest(client, farmer_token, harvest_date='09/01/2026').status_code == 400

    def test_officers_cannot_submit_harvests(self, client, officer_token):
        assert submit_harvest(client, officer_token).status_code == 403

    def test_my_harvests(self, client, farmer_token):
        submit_harvest(client, farmer_token)
        submit_harvest(client, farmer_token, harvest_date='2026-09-15')

        response = client.get('/api/harvests/my', headers=auth_header(farmer_token))

        dates = [h['harvest_date'] for h in response.get_json()['harvests']]
        assert dates == ['2026-09-15', '2026-09-01']

    def test_review_filters_and_reject_needs_notes(self, client, farmer_token, officer_token):
        harvest_id = submit_harvest(client, farmer_token).get_json()['harvest']['harvest_id']

        pending = client.get('/api/harvests/mao/harvests', query_string={'status': 'Pending Verification'},
                             headers=auth_header(officer_token)).get_json()['harvests']
        assert [h['harvest_id'] for h in pending] == [harvest_id]

        response = client.post(f'/api/harvests/mao/harvests/{harvest_id}/reject',
                               headers=auth_header(officer_token), json={'verification_notes': ' '})
        assert response.status_code == 400

        response = client.post(f'/api/harvests/mao/harvests/{harvest_id}/reject',
                               headers=auth_header(officer_token), json={'verification_notes': 'Wet fiber'})
        assert response.status_code == 200
        assert response.get_json()['harvest']['status'] == 'Rejected'
        assert response.get_json()['harvest']['verification_notes'] == 'Wet fiber'

    def test_farmer_withdraws_only_pending_own_harvest(self, app, client, farmer_token, officer_token):
        harvest_id = submit_harvest(client, farmer_token).get_json()['harvest']['harvest_id']
        create_farmer(app, email='other@example.com')
        other_token = token_for(client, 'other@example.com', 'farmer')

        assert client.delete(f'/api/harvests/{harvest_id}', headers=auth_header(other_token)).status_code == 403

        client.post(f'/api/harvests/mao/harvests/{harvest_id}/verify', headers=auth_header(officer_token))
        assert client.delete(f'/api/harvests/{harvest_id}', headers=auth_header(farmer_token)).status_code == 400
        assert client.delete(f'/api/harvests/{harvest_id}', headers=auth_header(officer_token)).status_code == 200


class TestInventory:
    def _verified_harvest(self, client, farmer_token, officer_token):
        harvest_id = submit_harvest(client, farmer_token).get_json()['harvest']['harvest_id']
        client.post(f'/api/harvests/mao/harvests/{harvest_id}/verify', headers=auth_header(officer_token))
        return harvest_id

    def test_only_verified_harvests_enter_inventory(self, client, farmer_token, officer_token):
        harvest_id = submit_harvest(client, farmer_token).get_json()['harvest']['harvest_id']

        response = client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                               json={'harvest_id': harvest_id})

        assert response.status_code == 400

    def test_add_distribute_and_statistics(self, app, client, farmer_token, officer_token):
        harvest_id = self._verified_harvest(client, farmer_token, officer_token)

        response = client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                               json={'harvest_id': harvest_id, 'storage_location': 'Warehouse A'})
        assert response.status_code == 201
        item = response.get_json()['inventory']
        assert item['current_stock_kg'] == 120
        assert item['status'] == 'Stocked'
        assert item['harvests']['farmer_name'] == 'Juan Dela Cruz'

        with app.app_context():
            assert db.session.get(Harvest, harvest_id).status == 'In Inventory'

        # An inventoried harvest cannot be reviewed again
        again = client.post(f'/api/harvests/mao/harvests/{harvest_id}/verify', headers=auth_header(officer_token))
        assert again.status_code == 400

        url = f"/api/inventory/inventory/{item['inventory_id']}/distribute"
        assert client.post(url, headers=auth_header(officer_token), json={'quantity_kg': 500}).status_code == 400
        assert client.post(url, headers=auth_header(officer_token), json={'quantity_kg': -1}).status_code == 400

        partial = client.post(url, headers=auth_header(officer_token), json={'quantity_kg': 20}).get_json()
        assert partial['inventory']['current_stock_kg'] == 100
        assert partial['inventory']['status'] == 'Partially Distributed'

        full = client.post(url, headers=auth_header(officer_token), json={'quantity_kg': 100}).get_json()
        assert full['inventory']['current_stock_kg'] == 0
        assert full['inventory']['total_distributed_kg'] == 120
        assert full['inventory']['status'] == 'Fully Distributed'

        stats = client.get('/api/inventory/inventory/statistics', headers=auth_header(officer_token)).get_json()
        assert stats['statistics']['total_inventory_items'] == 1
        assert stats['statistics']['total_distributed_kg'] == 120
        assert stats['statistics']['stocked_items'] == 0

    def test_update_validates_status(self, client, farmer_token, officer_token):
        harvest_id = self._verified_harvest(client, farmer_token, officer_token)
        item = client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                           json={'harvest_id': harvest_id}).get_json()['inventory']
        url = f"/api/inventory/inventory/{item['inventory_id']}"

        assert client.put(url, headers=auth_header(officer_token), json={'status': 'Lost'}).status_code == 400

        response = client.put(url, headers=auth_header(officer_token),
                              json={'storage_location': 'Warehouse B', 'current_stock_kg': 9999})
        assert response.status_code == 200
        assert response.get_json()['inventory']['storage_location'] == 'Warehouse B'
        assert response.get_json()['inventory']['current_stock_kg'] == 120

    def test_deleting_harvest_removes_inventory(self, app, client, farmer_token, officer_token):
        harvest_id = self._verified_harvest(client, farmer_token, officer_token)
        client.post('/api/inventory/inventory', headers=auth_header(officer_token), json={'harvest_id': harvest_id})

        client.delete(f'/api/harvests/{harvest_id}', headers=auth_header(officer_token))

        with app.app_context():
            assert InventoryItem.query.count() == 0


class TestSeedlings:
    def test_record_distribution(self, app, client, officer_token):
        farmer_id = create_farmer(app)

        response = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Inosa',
            'quantity_distributed': 200,
            'date_distributed': '2026-08-10',
            'recipient_farmer_id': farmer_id,
        })

        assert response.status_code == 201
        seedling = response.get_json()['seedling']
        assert seedling['status'] == 'distributed'
        assert seedling['farmers']['farmer_id'] == farmer_id
        assert seedling['association_officers']['full_name'] == 'Olivia Officer'

        listing = client.get('/api/seedlings/all', headers=auth_header(officer_token)).get_json()
        assert [s['seedling_id'] for s in listing] == [seedling['seedling_id']]

    def test_validation(self, client, officer_token):
        base = {'variety': 'Inosa', 'quantity_distributed': 10, 'date_distributed': '2026-08-10'}

        for bad in ({'variety': ''}, {'quantity_distributed': 0}, {'date_distributed': None},
                    {'status': 'lost'}):
            response = client.post('/api/seedlings', headers=auth_header(officer_token), json={**base, **bad})
            assert response.status_code == 400

        missing = client.post('/api/seedlings', headers=auth_header(officer_token),
                              json={**base, 'recipient_farmer_id': 'nobody'})
        assert missing.status_code == 400
        assert missing.get_json()['error'] == 'Recipient farmer not found'

    def test_farmer_records_planting(self, app, client, officer_token):
        farmer_id = create_farmer(app)
        seedling_id = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Abuab', 'quantity_distributed': 50, 'date_distributed': '2026-08-10',
            'recipient_farmer_id': farmer_id,
        }).get_json()['seedling']['seedling_id']
        token = token_for(client, 'farmer@example.com', 'farmer')

        mine = client.get('/api/seedlings/my', headers=auth_header(token)).get_json()
        assert [s['seedling_id'] for s in mine] == [seedling_id]

        url = f'/api/seedlings/{seedling_id}/plant'
        assert client.put(url, headers=auth_header(token), json={}).status_code == 400

        response = client.put(url, headers=auth_header(token),
                              json={'planting_date': '2026-08-20', 'planting_location': 'Lot 4'})
        assert response.status_code == 200
        assert response.get_json()['seedling']['status'] == 'planted'
        with app.app_context():
            seedling = db.session.get(SeedlingDistribution, seedling_id)
            assert seedling.planted_by == farmer_id
            assert seedling.planted_at is not None

    def test_other_farmer_cannot_plant(self, app, client, officer_token):
        farmer_id = create_farmer(app)
        create_farmer(app, email='other@example.com')
        seedling_id = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Abuab', 'quantity_distributed': 50, 'date_distributed': '2026-08-10',
            'recipient_farmer_id': farmer_id,
        }).get_json()['seedling']['seedling_id']
        other = token_for(client, 'other@example.com', 'farmer')

        response = client.put(f'/api/seedlings/{seedling_id}/plant', headers=auth_header(other),
                              json={'planting_date': '2026-08-20'})

        assert response.status_code == 403

    def test_update_and_delete(self, client, officer_token):
        seedling_id = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Abuab', 'quantity_distributed': 50, 'date_distributed': '2026-08-10',
        }).get_json()['seedling']['seedling_id']

        updated = client.put(f'/api/seedlings/{seedling_id}', headers=auth_header(officer_token),
                             json={'quantity_distributed': 75, 'date_distributed': '2026-08-11'})
        assert updated.status_code == 200
        assert updated.get_json()['seedling']['quantity_distributed'] == 75
        assert updated.get_json()['seedling']['date_distributed'] == '2026-08-11'

        assert client.delete(f'/api/seedlings/{seedling_id}', headers=auth_header(officer_token)).status_code == 200
        assert client.delete(f'/api/seedlings/{seedling_id}', headers=auth_header(officer_token)).status_code == 404


class TestSalesReports:
    def test_submit_computes_total(self, client, farmer_token):
        response = client.post('/api/sales/reports', headers=auth_header(farmer_token), json={
            'buyer_company_name': 'Fiber Traders Inc',
            'quantity_sold': 10,
            'price_per_kg': 55.5,
            'sale_date': '2026-09-20',
        })

        assert response.status_code == 201
        report = response.get_json()['report']
        assert report['total_amount'] == 555.0
        assert report['status'] == 'pending'
        assert report['farmers']['full_name'] == 'Juan Dela Cruz'

    def test_invalid_report(self, client, farmer_token):
        assert client.post('/api/sales/reports', headers=auth_header(farmer_token),
                           json={'quantity_sold': 10}).status_code == 400
        assert client.post('/api/sales/reports', headers=auth_header(farmer_token),
                           json={'buyer_company_name': 'X', 'quantity_sold': 0}).status_code == 400

    def test_review_and_buyer_transactions(self, app, client, farmer_token, officer_token):
        create_buyer(app)
        buyer_token = token_for(client, 'buyer@example.com', 'buyer')
        report_id = client.post('/api/sales/reports', headers=auth_header(farmer_token), json={
            'buyer_company_name': 'fiber traders inc', 'quantity_sold': 30, 'price_per_kg': 60,
        }).get_json()['report']['report_id']

        assert client.get('/api/buyers/transactions', headers=auth_header(buyer_token)).get_json() == []

        bad = client.put(f'/api/sales/reports/{report_id}/status', headers=auth_header(officer_token),
                         json={'status': 'done'})
        assert bad.status_code == 400

        approved = client.put(f'/api/sales/reports/{report_id}/status', headers=auth_header(officer_token),
                              json={'status': 'approved'})
        assert approved.status_code == 200
        assert approved.get_json()['report']['reviewed_by'] is not None

        transactions = client.get('/api/buyers/transactions', headers=auth_header(buyer_token)).get_json()
        assert [t['report_id'] for t in transactions] == [report_id]

        profile = client.get('/api/buyers/profile', headers=auth_header(buyer_token)).get_json()
        assert profile['businessName'] == 'Fiber Traders Inc'

    def test_farmer_sees_only_own_reports(self, app, client, farmer_token, officer_token):
        client.post('/api/sales/reports', headers=auth_header(farmer_token),
                    json={'buyer_company_name': 'A', 'quantity_sold': 1})
        create_farmer(app, email='other@example.com')
        other = token_for(client, 'other@example.com', 'farmer')
        client.post('/api/sales/reports', headers=auth_header(other),
                    json={'buyer_company_name': 'B', 'quantity_sold': 2})

        mine = client.get('/api/sales/reports', headers=auth_header(farmer_token)).get_json()['reports']
        everything = client.get('/api/sales/reports', headers=auth_header(officer_token)).get_json()['reports']

        assert [r['buyer_company_name'] for r in mine] == ['A']
        assert len(everything) == 2

    def test_farmer_withdraws_pending_report(self, app, client, farmer_token, officer_token):
        report_id = client.post('/api/sales/reports', headers=auth_header(farmer_token),
                                json={'buyer_company_name': 'A', 'quantity_sold': 1}).get_json()['report']['report_id']
        client.put(f'/api/sales/reports/{report_id}/status', headers=auth_header(officer_token),
                   json={'status': 'approved'})

        assert client.delete(f'/api/sales/reports/{report_id}', headers=auth_header(farmer_token)).status_code == 400
        assert client.delete(f'/api/sales/reports/{report_id}', headers=auth_header(officer_token)).status_code == 200
        with app.app_context():
            assert SalesReport.query.count() == 0


class TestDashboard:
    def test_counts(self, app, client, farmer_token, officer_token):
        create_farmer(app, email='pending@example.com', status='pending')
        create_farmer(app, email='rejected@example.com', status='rejected')
        submit_harvest(client, farmer_token)

        stats = client.get('/api/mao/dashboard', headers=auth_header(officer_token)).get_json()

        assert stats['farmers'] == {'total': 3, 'verified': 1, 'pending': 1, 'rejected': 1}
        assert stats['pending_harvests'] == 1
        assert stats['total_stock_kg'] == 0

    def test_deleting_farmer_removes_their_harvests(self, app, client, farmer_token, officer_token):
        submit_harvest(client, farmer_token)
        with app.app_context():
            farmer_id = Farmer.query.filter_by(email='farmer@example.com').one().farmer_id

        client.delete(f'/api/users/farmers/{farmer_id}', headers=auth_header(officer_token))

        with app.app_context():
            assert Harvest.query.count() == 0


class TestNumericInput:
    NON_FINITE = ('nan', 'inf', 'Infinity', '-inf')

    def _verified_harvest(self, client, farmer_token, officer_token):
        harvest_id = submit_harvest(client, farmer_token).get_json()['harvest']['harvest_id']
        client.post(f'/api/harvests/mao/harvests/{harvest_id}/verify', headers=auth_header(officer_token))
        return harvest_id

    def test_harvest_output_must_be_finite(self, app, client, farmer_token):
        for value in self.NON_FINITE:
            assert submit_harvest(client, farmer_token, dry_fiber_output_kg=value).status_code == 400
        assert submit_harvest(client, farmer_token, area_hectares='nan').status_code == 400

        with app.app_context():
            assert Harvest.query.count() == 0

    def test_inventory_weight_must_be_finite(self, app, client, farmer_token, officer_token):
        harvest_id = self._verified_harvest(client, farmer_token, officer_token)

        for value in self.NON_FINITE:
            response = client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                                   json={'harvest_id': harvest_id, 'stock_weight_kg': value})
            assert response.status_code == 400

        with app.app_context():
            assert InventoryItem.query.count() == 0
            assert db.session.get(Harvest, harvest_id).status == 'Verified'

    def test_distribution_quantity_must_be_finite(self, app, client, farmer_token, officer_token):
        harvest_id = self._verified_harvest(client, farmer_token, officer_token)
        item = client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                           json={'harvest_id': harvest_id}).get_json()['inventory']
        url = f"/api/inventory/inventory/{item['inventory_id']}/distribute"

        for value in self.NON_FINITE:
            assert client.post(url, headers=auth_header(officer_token), json={'quantity_kg': value}).status_code == 400

        with app.app_context():
            stored = db.session.get(InventoryItem, item['inventory_id'])
            assert stored.current_stock_kg == 120
            assert stored.status == 'Stocked'

    def test_sales_figures_must_be_finite(self, app, client, farmer_token):
        for body in ({'quantity_sold': 'inf'}, {'quantity_sold': 'nan'},
                     {'quantity_sold': 5, 'price_per_kg': 'nan'},
                     {'quantity_sold': 5, 'total_amount': 'Infinity'}):
            response = client.post('/api/sales/reports', headers=auth_header(farmer_token),
                                   json={'buyer_company_name': 'Fiber Traders Inc', **body})
            assert response.status_code == 400

        with app.app_context():
            assert SalesReport.query.count() == 0

    def test_seedling_update_validates_quantity(self, app, client, officer_token):
        seedling_id = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Abuab', 'quantity_distributed': 50, 'date_distributed': '2026-08-10',
        }).get_json()['seedling']['seedling_id']
        url = f'/api/seedlings/{seedling_id}'

        for value in (-5, 0, 'abc', 'inf', 'nan'):
            response = client.put(url, headers=auth_header(officer_token), json={'quantity_distributed': value})
            assert response.status_code == 400
        assert client.put(url, headers=auth_header(officer_token), json={'variety': '  '}).status_code == 400

        with app.app_context():
            assert db.session.get(SeedlingDistribution, seedling_id).quantity_distributed == 50


class TestMalformedBodies:
    def test_non_object_bodies_are_treated_as_empty(self, app, client, farmer_token, officer_token):
        farmer_id = create_farmer(app, email='pending@example.com', status='pending')

        for body in (['x'], 'text', 42):
            assert client.post('/api/auth/refresh', json=body).status_code == 400
            assert client.post('/api/auth/login', json=body).status_code == 400
            assert client.post('/api/auth/register/farmer', json=body).status_code == 400
            assert client.post('/api/harvests', headers=auth_header(farmer_token), json=body).status_code == 400
            assert client.post(f'/api/users/farmers/{farmer_id}/reject',
                               headers=auth_header(officer_token), json=body).status_code == 400
            assert client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                               json=body).status_code == 400

    def test_wrongly_typed_identifiers(self, client, officer_token):
        assert client.post('/api/auth/refresh', json={'refreshToken': 123}).status_code == 400
        assert client.post('/api/inventory/inventory', headers=auth_header(officer_token),
                           json={'harvest_id': ['a']}).status_code == 400
        response = client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 'Abuab', 'quantity_distributed': 5, 'date_distributed': '2026-08-10',
            'recipient_farmer_id': {'id': 1},
        })
        assert response.status_code == 400
        assert client.post('/api/seedlings', headers=auth_header(officer_token), json={
            'variety': 7, 'quantity_distributed': 5, 'date_distributed': '2026-08-10',
        }).status_code == 400
