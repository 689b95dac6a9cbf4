from dispatch.result import AssignmentMethod, OptimizationResult, RideAssignment


def _assignment(ride_id, driver_id, sequence=0):
    return RideAssignment(
        ride_id=ride_id,
        pickup_driver_id=driver_id,
        dropoff_driver_id=driver_id,
        phase="ONE_WAY",
        method=AssignmentMethod.ONE_WAY,
        sequence=sequence,
    )


def test_success_rate_formula():
    result = OptimizationResult.create("B1", total_rides=3)
    result.add_assignment(_assignment("r1", "d1"))
    result.add_unassigned_ride("r2", "No compatible driver available")
    result.add_unassigned_ride("r3", "No compatible driver available")

    assert result.assigned_ride_count == 1
    assert result.success_rate == 1 * 100.0 / 3


def test_success_rate_is_zero_for_empty_batch():
    assert OptimizationResult.empty("B1").success_rate == 0.0


def test_merge_concatenates_rides_per_driver():
    total = OptimizationResult.create("B1", total_rides=3)
    total.add_assignment(_assignment("r1", "d1"))

    phase = OptimizationResult.create("B1")
    phase.add_assignment(_assignment("r2", "d1", sequence=1))
    phase.add_assignment(_assignment("r3", "d2", sequence=2))

    total.merge(phase)

    assert total.driver_assignments == {"d1": ["r1", "r2"], "d2": ["r3"]}
    assert total.assigned_driver_ids == {"d1", "d2"}
    assert total.assigned_driver_count == 2
    assert [assignment.ride_id for assignment in total.assignments] == ["r1", "r2", "r3"]


def test_merge_never_reclaims_an_assigned_ride():
    total = OptimizationResult.create("B1", total_rides=1)
    total.add_assignment(_assignment("r1", "d1"))

    later = OptimizationResult.create("B1")
    later.add_unassigned_ride("r1", "No compatible driver available")

    total.merge(later)

    assert total.unassigned_rides == {}
    assert total.assigned_ride_count == 1


def test_revoke_assignment_moves_ride_to_unassigned():
    result = OptimizationResult.create("B1", total_rides=2)
    result.add_assignment(_assignment("r1", "d1"))
    result.add_assignment(_assignment("r2", "d2", sequence=1))

    revoked = result.revoke_assignment("r1", "Ride was modified concurrently (version conflict)")

    assert revoked.ride_id == "r1"
    assert result.driver_assignments == {"d2": ["r2"]}
    assert result.unassigned_rides == {"r1": "Ride was modified concurrently (version conflict)"}
    # accounting still holds
    assert result.assigned_ride_count + result.unassigned_ride_count == result.total_rides
