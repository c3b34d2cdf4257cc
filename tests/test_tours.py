import pytest
from decimal import Decimal

from gnb_transfer.models.enums import TourCategory


class TestTourCatalog:

    def test_lists_active_tours_campaigns_first(self, client, make_tour):
        make_tour(title='Antalya Transfer', location='Antalya', category=TourCategory.TRANSFER)
        make_tour(title='Bosphorus Cruise', discount=Decimal('15'), is_campaign=True)
        make_tour(title='Closed Tour', active=False)

        response = client.get('/api/tours')

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Found 2 tour(s)'
        assert [t['title'] for t in data['data']] == ['Bosphorus Cruise', 'Antalya Transfer']
        assert data['data'][0]['discountedPrice'] == 85.0

    def test_filters(self, client, make_tour):
        make_tour(title='Antalya Transfer', location='Antalya', category=TourCategory.TRANSFER)
        make_tour(title='Bosphorus Cruise', is_campaign=True, discount=Decimal('10'))

        by_location = client.get('/api/tours?location=ANTALYA').get_json()['data']
        by_category = client.get('/api/tours?category=tour').get_json()['data']
        on_campaign = client.get('/api/tours?campaign=true').get_json()['data']

        assert [t['title'] for t in by_location] == ['Antalya Transfer']
        assert [t['title'] for t in by_category] == ['Bosphorus Cruise']
        assert [t['title'] for t in on_campaign] == ['Bosphorus Cruise']

    def test_unknown_category(self, client):
        response = client.get('/api/tours?category=spaceflight')
        assert response.status_code == 422

    def test_get_by_id_or_slug(self, client, make_tour):
        tour = make_tour()

        assert client.get(f'/api/tours/{tour.id}').get_json()['data']['title'] == 'Bosphorus Cruise'
        assert client.get('/api/tours/bosphorus-cruise').get_json()['data']['id'] == tour.id

    def test_inactive_tour_is_hidden(self, client, make_tour):
        tour = make_tour(active=False)
        assert client.get(f'/api/tours/{tour.id}').status_code == 404


class TestExtraServiceCatalog:

    def test_active_services_in_display_order(self, client, db, extra_services):
        extra_services['VIP_LOUNGE'].active = False
        db.session.commit()

        response = client.get('/api/extra-services')

        codes = [s['code'] for s in response.get_json()['data']]
        assert codes == ['CHILD_SEAT', 'BABY_SEAT', 'MEET_AND_GREET']

    @pytest.mark.parametrize('key,code', [
        ('childSeat', 'CHILD_SEAT'),
        ('meet-and-greet', 'MEET_AND_GREET'),
        ('vip lounge', 'VIP_LOUNGE'),
        ('BABY_SEAT', 'BABY_SEAT'),
    ])
    def test_code_from_key(self, key, code):
        from gnb_transfer.models import ExtraService
        assert ExtraService.code_from_key(key) == code
