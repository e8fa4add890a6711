from vmdrec.core.bone_schema import (
    BONE_COUNT, BONE_PARENTS, BONE_SCHEMA, BoneId, IK_TOGGLE_ORDER,
    UNGHOSTED_BONES, VMD_BONE_NAMES, path_to_root, schema_entry, validate_schema,
)


def test_schema_is_valid():
    """Catalog is acyclic, single-rooted and fully named."""
    validate_schema()


def test_ids_are_dense_and_ordered():
    assert BONE_COUNT == 52
    assert [int(b) for b in BoneId] == list(range(BONE_COUNT))
    assert [entry.id for entry in BONE_SCHEMA] == list(BoneId)


def test_every_bone_reaches_root():
    for bone in BoneId:
        if bone == BoneId.ROOT:
            assert path_to_root(bone) == []
            continue
        path = path_to_root(bone)
        assert path[-1] == BoneId.ROOT, f"{bone.name} does not end at ROOT"
        assert len(set(path)) == len(path)


def test_parents_precede_children():
    """Export order lists every parent before its children."""
    for bone, parent in BONE_PARENTS.items():
        if parent is not None:
            assert int(parent) < int(bone), f"{parent.name} after {bone.name}"
        for candidate in schema_entry(bone).ghost_parents:
            assert int(candidate) < int(bone)


def test_ghost_parent_candidates():
    assert schema_entry(BoneId.HEAD).ghost_parents == (
        BoneId.NECK, BoneId.UPPER_BODY2, BoneId.UPPER_BODY
    )
    assert schema_entry(BoneId.LEFT_ELBOW).ghost_parents == (BoneId.LEFT_ARM,)
    assert schema_entry(BoneId.CENTER).ghost_parents == ()
    for bone in UNGHOSTED_BONES:
        assert schema_entry(bone).ghost_parents == ()


def test_ik_entries():
    assert schema_entry(BoneId.LEFT_TOE_IK).is_ik
    assert not schema_entry(BoneId.LEFT_ANKLE).is_ik
    assert [VMD_BONE_NAMES[b] for b in IK_TOGGLE_ORDER] == [
        "左足ＩＫ", "左つま先ＩＫ", "右足ＩＫ", "右つま先ＩＫ"
    ]


def test_vmd_names_fit_field():
    for bone, name in VMD_BONE_NAMES.items():
        assert len(name.encode("cp932")) <= 15, f"{bone.name} name too long"
