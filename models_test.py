import unittest

from models import (
    BerthAssignment,
    Container,
    ContainerSize,
    PlacementRequest,
    RequestStatus,
    SlotKey,
    Suggestion,
    Priority,
    WeightGroup,
    YardSettings,
    logical_bay,
    weight_group,
)
from occupancy import OccupancyIndex, footprint_bays


class TestSlotKey(unittest.TestCase):

    def test_wire_format_pads_bay_and_row_only(self):
        self.assertEqual(SlotKey("A1", 1, 6, 1).format(), "A1-01-06-1")
        self.assertEqual(SlotKey("B0", 24, 11, 3).format(), "B0-24-11-3")

    def test_parse(self):
        self.assertEqual(SlotKey.parse("A1-01-06-1"), SlotKey("A1", 1, 6, 1))
        self.assertEqual(SlotKey.parse("CFS 1-3-2-1"), SlotKey("CFS 1", 3, 2, 1))
        # bay 1 and bay 01 are the same slot
        self.assertEqual(SlotKey.parse("A1-1-6-1"), SlotKey.parse("A1-01-06-1"))

    def test_parse_rejects_garbage(self):
        for text in ("", "A1", "A1-01-06", "A1-xx-06-1", None):
            with self.assertRaises(ValueError):
                SlotKey.parse(text)

    def test_keys_hash_structurally(self):
        seen = {SlotKey("A1", 1, 6, 1): "x"}
        self.assertIn(SlotKey("A1", 1, 6, 1), seen)
        self.assertNotIn(SlotKey("A1", 1, 6, 2), seen)


class TestSizesAndWeights(unittest.TestCase):

    def test_size_parse(self):
        self.assertEqual(ContainerSize.parse(20), ContainerSize.SHORT)
        self.assertEqual(ContainerSize.parse("40"), ContainerSize.LONG)
        self.assertEqual(ContainerSize.parse("40ft"), ContainerSize.LONG)
        with self.assertRaises(ValueError):
            ContainerSize.parse("45")

    def test_weight_group_threshold(self):
        self.assertEqual(weight_group(17.99), WeightGroup.LIGHT)
        self.assertEqual(weight_group(18), WeightGroup.HEAVY)
        self.assertEqual(weight_group(None), WeightGroup.LIGHT)

    def test_logical_bay(self):
        self.assertEqual(logical_bay(3, ContainerSize.SHORT), 3)
        self.assertEqual(logical_bay(4, ContainerSize.SHORT), 3)
        self.assertEqual(logical_bay(1, ContainerSize.LONG, "start"), 2)
        self.assertEqual(logical_bay(3, ContainerSize.LONG, "end"), 2)
        self.assertEqual(logical_bay(2, ContainerSize.LONG), 2)

    def test_footprint(self):
        self.assertEqual(footprint_bays(5, ContainerSize.SHORT), [5])
        self.assertEqual(footprint_bays(6, ContainerSize.LONG), [5, 7])


class TestSettings(unittest.TestCase):

    def setUp(self):
        self.settings = YardSettings(
            max_tier_by_block={"B0": 6},
            berth_mapping=[BerthAssignment("1A", ["A1", "B1"]),
                           BerthAssignment("BARGING", ["D1"])],
        )

    def test_max_tier_defaults_to_five(self):
        self.assertEqual(self.settings.max_tier("B0"), 6)
        self.assertEqual(self.settings.max_tier("A1"), 5)

    def test_berth_blocks_fall_back_to_default_berth(self):
        self.assertEqual(self.settings.blocks_for_berth("1A"), ["A1", "B1"])
        self.assertEqual(self.settings.blocks_for_berth("1a"), ["A1", "B1"])
        self.assertEqual(self.settings.blocks_for_berth("7"), ["D1"])
        self.assertEqual(YardSettings().blocks_for_berth("7"), [])


class TestSuggestion(unittest.TestCase):

    def test_location_round_trips_to_slot(self):
        s = Suggestion.at(SlotKey("A1", 2, 6, 3), Priority.CLUSTER, "x", [])
        self.assertEqual((s.bay, s.row, s.tier), ("02", "06", "3"))
        self.assertEqual(s.location, "A1-02-06-3")
        self.assertEqual(SlotKey.parse(s.location), s.slot)

    def test_not_found(self):
        s = Suggestion.none("nothing", ["trace"])
        self.assertTrue(s.not_found)
        self.assertEqual(s.priority, Priority.NONE)
        self.assertIsNone(s.location)


class TestOccupancyIndex(unittest.TestCase):

    def test_merges_inventory_and_assignments(self):
        containers = [
            Container("C1", "A1", 1, 6, 1, vessel="V", destination_port="P"),
            Container("L1", "A1", 5, 6, 1, ContainerSize.LONG, is_multi_bay=True, part_type="start"),
            Container("L1", "A1", 7, 6, 1, ContainerSize.LONG, is_multi_bay=True, part_type="end"),
            Container("U1", "A1", 9, 6, 1, location="Unmapped"),
        ]
        requests = [
            PlacementRequest("R1", "V", "P", ContainerSize.LONG, 20.0,
                             status=RequestStatus.ASSIGNED, assigned_location="B1-02-03-1"),
            PlacementRequest("R2", "V", "P", ContainerSize.SHORT, 20.0),
        ]
        index = OccupancyIndex.build(containers, requests)

        self.assertIn(SlotKey("A1", 1, 6, 1), index)
        self.assertIn(SlotKey("A1", 5, 6, 1), index)
        self.assertIn(SlotKey("A1", 7, 6, 1), index)
        self.assertNotIn(SlotKey("A1", 9, 6, 1), index)
        self.assertIn(SlotKey("B1", 1, 3, 1), index)
        self.assertIn(SlotKey("B1", 3, 3, 1), index)
        self.assertNotIn(SlotKey("B1", 2, 3, 1), index)
        self.assertEqual(len(index), 5)

        self.assertTrue(index.get(SlotKey("B1", 3, 3, 1)).committed)
        self.assertEqual(index.get(SlotKey("A1", 7, 6, 1)).logical_bay, 6)

    def test_units_count_long_boxes_once(self):
        containers = [
            Container("L1", "A1", 5, 6, 1, ContainerSize.LONG, is_multi_bay=True, part_type="start"),
            Container("L1", "A1", 7, 6, 1, ContainerSize.LONG, is_multi_bay=True, part_type="end"),
        ]
        requests = [
            PlacementRequest("R1", "V", "P", ContainerSize.LONG, 20.0,
                             status=RequestStatus.ASSIGNED, assigned_location="B1-02-03-1"),
        ]
        units = OccupancyIndex.build(containers, requests).units()
        self.assertEqual([u.source_id for u in units], ["L1", "R1"])
        self.assertEqual([u.logical_bay for u in units], [6, 2])


if __name__ == '__main__':
    unittest.main()
