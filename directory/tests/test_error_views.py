from django.test import TestCase


class ErrorViewTests(TestCase):

    def test_unknown_api_path_is_json(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {
            'ok': False, 'code': 'NOT_FOUND', 'message': 'Endpoint bulunamadı', 'path': '/api/does-not-exist',
        })

    def test_wrong_method(self):
        self.assertEqual(self.client.delete('/api/businesses/search').status_code, 405)
