"""
e-doğrula: featured slots, public listing and admin management.
"""

from datetime import timedelta

from django.test import Client, TestCase
from django.urls import reverse
from django.utils import timezone

from directory.models import Business, Featured
from directory.services import featured as svc

from .helpers import admin_headers


class FeaturedServiceTests(TestCase):

    def test_status_to_active(self):
        self.assertTrue(svc.status_to_active('Active'))
        self.assertFalse(svc.status_to_active('draft'))
        self.assertIsNone(svc.status_to_active('scheduled'))

    def test_fields_from_legacy_payload(self):
        business = Business.objects.create(name='Kule')
        data = svc.fields_from_payload({
            'businessId': str(business.pk), 'placement': 'Home', 'status': 'archived',
            'order': 'x', 'startAt': '2026-01-01',
        })
        self.assertEqual(data['business'], business)
        self.assertEqual(data['type'], 'Home')
        self.assertFalse(data['active'])
        self.assertEqual(data['order'], 0)
        self.assertEqual(data['start_at'].date().isoformat(), '2026-01-01')


class FeaturedApiTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.headers = admin_headers()
        self.kule = Business.objects.create(name='Kule Bungalov', gallery=['https://cdn.example.com/k.webp'])
        self.gol = Business.objects.create(name='Göl Evi', city='Bolu')

    def create(self, **body):
        return self.client.post(reverse('admin_featured'), data=body, content_type='application/json', **self.headers)

    def test_create_assigns_next_order(self):
        first = self.create(businessId=str(self.kule.pk), place='Sapanca', type='Home')
        self.assertEqual(first.status_code, 201)
        item = first.json()['item']
        self.assertEqual(item['order'], 1)
        self.assertEqual(item['place'], 'sapanca')
        self.assertEqual(item['type'], 'home')
        self.assertEqual(item['href'], '/isletme/kule-bungalov')
        self.assertEqual(item['imageUrl'], 'https://cdn.example.com/k.webp')
        self.assertEqual(item['status'], 'active')

        second = self.create(businessId=str(self.gol.pk), place='sapanca', type='home')
        self.assertEqual(second.json()['item']['order'], 2)
        self.assertEqual(second.json()['item']['subtitle'], 'Bolu')

    def test_create_duplicate_slot(self):
        self.create(businessId=str(self.kule.pk), place='sapanca', type='home')
        response = self.create(businessId=str(self.kule.pk), place='Sapanca', type='HOME')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'DUPLICATE')

    def test_create_requires_existing_business(self):
        response = self.create(businessId='9999', place='sapanca')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'VALIDATION_ERROR')

    def test_public_list_only_active_now(self):
        now = timezone.now()
        live = Featured.objects.create(business=self.kule, place='sapanca', type='home', order=2)
        Featured.objects.create(business=self.gol, place='sapanca', type='home', active=False)
        Featured.objects.create(business=self.gol, place='bolu', type='home', start_at=now + timedelta(days=2))
        Featured.objects.create(business=self.kule, place='bolu', type='home', end_at=now - timedelta(days=1))
        current = Featured.objects.create(
            business=self.gol, place='sapanca', type='top', order=1,
            start_at=now - timedelta(days=1), end_at=now + timedelta(days=1),
        )
        data = self.client.get(reverse('featured_public_list')).json()
        self.assertEqual([i['id'] for i in data['items']], [str(current.pk), str(live.pk)])

        data = self.client.get(reverse('featured_public_list'), {'type': 'home'}).json()
        self.assertEqual([i['id'] for i in data['items']], [str(live.pk)])

    def test_admin_list_status_filters(self):
        now = timezone.now()
        Featured.objects.create(business=self.kule, place='sapanca', start_at=now + timedelta(days=1))
        Featured.objects.create(business=self.gol, place='sapanca', active=False)
        data = self.client.get(reverse('admin_featured'), {'status': 'scheduled'}, **self.headers).json()
        self.assertEqual([i['status'] for i in data['featured']], ['scheduled'])
        data = self.client.get(reverse('admin_featured'), {'status': 'draft'}, **self.headers).json()
        self.assertEqual([i['businessName'] for i in data['featured']], ['Göl Evi'])
        data = self.client.get(reverse('admin_featured'), {'q': 'kule'}, **self.headers).json()
        self.assertEqual(data['total'], 1)

    def test_patch_and_delete(self):
        item = Featured.objects.create(business=self.kule, place='sapanca')
        url = reverse('admin_featured_detail', args=[item.pk])
        response = self.client.patch(url, data={'status': 'draft', 'businessId': str(self.gol.pk)},
                                     content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['item']['active'])
        self.assertEqual(response.json()['item']['businessName'], 'Göl Evi')

        response = self.client.patch(url, data={'businessId': '9999'}, content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 400)

        self.assertTrue(self.client.delete(url, **self.headers).json()['success'])
        self.assertEqual(self.client.delete(url, **self.headers).status_code, 404)

    def test_reorder_and_bulk(self):
        a = Featured.objects.create(business=self.kule, place='sapanca', order=1)
        b = Featured.objects.create(business=self.gol, place='sapanca', order=2)
        data = self.client.post(reverse('admin_featured_reorder'), data={
            'items': [{'id': b.pk, 'order': 1}, {'id': a.pk, 'order': 2}, {'id': 9999, 'order': 3}, 'junk'],
        }, content_type='application/json', **self.headers).json()
        self.assertEqual(data['updated'], 2)
        self.assertEqual(list(Featured.objects.values_list('pk', flat=True)), [b.pk, a.pk])

        data = self.client.post(reverse('admin_featured_bulk'), data={
            'ids': [a.pk, b.pk], 'op': 'active', 'value': False,
        }, content_type='application/json', **self.headers).json()
        self.assertEqual(data['updated'], 2)

        data = self.client.post(reverse('admin_featured_bulk'), data={
            'ids': [a.pk], 'op': 'delete',
        }, content_type='application/json', **self.headers).json()
        self.assertEqual(data['deleted'], 1)

        response = self.client.post(reverse('admin_featured_bulk'), data={'ids': [b.pk], 'op': 'nope'},
                                    content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 400)

    def test_export_is_public_and_quoted(self):
        Featured.objects.create(business=self.kule, place='sapanca', type='home')
        response = self.client.get(reverse('featured_export'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="featured.csv"')
        body = response.content.decode('utf-8-sig')
        self.assertTrue(body.startswith('"place";"type";"order"'))
        self.assertIn('"Kule Bungalov"', body)
