import unittest

from remindly.core.errors import AppError, ErrorKind, storage_error


class TestAppError(unittest.TestCase):
    def test_status_mapping(self):
        expected = {
            ErrorKind.VALIDATION: 400,
            ErrorKind.UNAUTHORIZED: 401,
            ErrorKind.NOT_FOUND: 404,
            ErrorKind.QUOTA_EXCEEDED: 402,
            ErrorKind.UPSTREAM: 502,
            ErrorKind.STORAGE: 500,
        }
        for kind, status in expected.items():
            self.assertEqual(AppError(kind, "x").status_code, status)

    def test_internal_detail_stays_out_of_the_body(self):
        err = storage_error(RuntimeError("disk I/O error at /var/db"))
        self.assertEqual(err.to_body(), {"code": "database_error", "message": "Please try again later."})
        self.assertIn("disk I/O error", str(err))

    def test_client_errors_keep_their_message(self):
        err = AppError(ErrorKind.QUOTA_EXCEEDED, "quota_exceeded", "Monthly quota used up")
        self.assertEqual(err.to_body(), {"code": "quota_exceeded", "message": "Monthly quota used up"})


if __name__ == "__main__":
    unittest.main()
