"""
Tests for the models module.
"""
import unittest
import sys
import os
from datetime import date, datetime, timezone

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from models import Pagination, Video, VideoQuery


class TestVideoFromSearchItem(unittest.TestCase):

    def setUp(self):
        self.item = {
            "id": {"kind": "youtube#video", "videoId": "abc123"},
            "snippet": {
                "publishedAt": "2024-05-01T08:30:00+02:00",
                "title": "Official video",
                "description": "desc",
                "channelTitle": "Channel",
                "channelId": "UC1",
                "thumbnails": {
                    "default": {"url": "https://i.ytimg.com/vi/abc123/default.jpg", "width": 120, "height": 90},
                    "broken": {"width": 1},
                },
            },
        }

    def test_maps_fields(self):
        video = Video.from_search_item(self.item)

        self.assertEqual(video.video_id, "abc123")
        self.assertEqual(video.title, "Official video")
        self.assertEqual(video.published_at, datetime(2024, 5, 1, 6, 30, tzinfo=timezone.utc))
        self.assertEqual(video.channel_id, "UC1")
        self.assertEqual(list(video.thumbnails), ["default"])

    def test_missing_optional_fields(self):
        del self.item["snippet"]["description"]
        del self.item["snippet"]["thumbnails"]

        video = Video.from_search_item(self.item)

        self.assertEqual(video.description, "")
        self.assertEqual(video.thumbnails, {})

    def test_missing_video_id(self):
        del self.item["id"]["videoId"]
        with self.assertRaises(KeyError):
            Video.from_search_item(self.item)

    def test_bad_timestamp(self):
        self.item["snippet"]["publishedAt"] = "last tuesday"
        with self.assertRaises(ValueError):
            Video.from_search_item(self.item)


class TestVideoQuery(unittest.TestCase):

    def test_defaults(self):
        query = VideoQuery()
        self.assertEqual((query.page, query.limit, query.sort_by, query.sort_order), (1, 10, "publishedAt", "desc"))
        self.assertEqual(query.offset, 0)
        self.assertFalse(query.has_dashboard_options)

    def test_normalization(self):
        query = VideoQuery(page=3, limit=500, sort_by="views", sort_order="ASC", title="  ")

        self.assertEqual(query.limit, 100)
        self.assertEqual(query.offset, 200)
        self.assertEqual(query.sort_by, "publishedAt")
        self.assertEqual(query.sort_order, "asc")
        self.assertIsNone(query.title)

    def test_unknown_sort_order(self):
        self.assertEqual(VideoQuery(sort_order="sideways").sort_order, "desc")

    def test_dashboard(self):
        query = VideoQuery(channel_title="Studio", date_to=date(2024, 1, 31))

        self.assertTrue(query.has_dashboard_options)
        dashboard = query.dashboard().model_dump(by_alias=True, exclude_none=True)
        self.assertEqual(dashboard, {
            "filters": {"channelTitle": "Studio", "dateTo": date(2024, 1, 31)},
            "sorting": {"sortBy": "publishedAt", "sortOrder": "desc"},
        })


class TestPagination(unittest.TestCase):

    def test_build(self):
        pagination = Pagination.build(page=2, limit=10, total=25)
        self.assertEqual(pagination.total_pages, 3)
        self.assertTrue(pagination.has_next_page)
        self.assertTrue(pagination.has_prev_page)

    def test_empty(self):
        pagination = Pagination.build(page=1, limit=10, total=0)
        self.assertEqual(pagination.total_pages, 0)
        self.assertFalse(pagination.has_next_page)
        self.assertFalse(pagination.has_prev_page)


if __name__ == '__main__':
    unittest.main()
