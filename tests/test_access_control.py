"""
Tests for the AccessControl engine
"""

import logging

import pytest

from rolegate import (AccessControl, AccessControlError, InvalidInputError,
                      Permission, QueryInfo, RoleNotFoundError,
                      SelfExtensionError, Settings)

SPORTS = {"Fn": "EQUALS", "args": {"category": "sports"}}
POLITICS = {"Fn": "EQUALS", "args": {"category": "politics"}}


class TestGrantsManagement:
    """Test setting, reading and resetting grants"""

    def test_set_grants_from_list(self, ac, grant_list):
        """Test loading a flat grant list"""
        ac.set_grants(grant_list)

        assert ac.get_roles() == ["admin", "user"]
        assert ac.can("admin").execute("create").on("video").granted
        assert ac.can("user").execute("delete").on("video").granted
        assert not ac.can("user").execute("delete").on("photo").granted

    def test_set_grants_from_object(self, ac, grants_object):
        """Test loading a grants mapping"""
        ac.set_grants(grants_object)

        assert ac.has_role(["admin", "user"])
        assert ac.can("admin").execute("read").on("video").attributes == ["*"]

        entry = ac.get_grants()["user"]
        assert entry.grants[0].resource == ("video",)
        assert entry.grants[0].action == ("create",)

    def test_constructor_accepts_grants(self, grant_list):
        """Test passing grants at construction time"""
        ac = AccessControl(grant_list, settings=Settings())
        assert ac.has_role("admin")

    def test_set_grants_replaces_previous_grants(self, ac, grant_list):
        """Test that set_grants drops existing roles"""
        ac.grant("editor").execute("update").on("article")
        ac.set_grants(grant_list)

        assert not ac.has_role("editor")

    def test_invalid_grants_keep_current_state(self, ac, grant_list):
        """Test that a failed load leaves the grants untouched"""
        ac.set_grants(grant_list)

        with pytest.raises(InvalidInputError):
            ac.set_grants([{"role": "broken", "action": "read"}])
        with pytest.raises(InvalidInputError):
            ac.set_grants([{"role": "broken", "resource": "a", "action": "read", "foo": 1}])
        with pytest.raises(InvalidInputError):
            ac.set_grants("admin")
        with pytest.raises(InvalidInputError):
            ac.set_grants({"admin": {"grants": "not a list"}})

        assert ac.get_roles() == ["admin", "user"]

    def test_reset(self, ac, grant_list):
        """Test removing everything"""
        ac.set_grants(grant_list)
        ac.reset()

        assert ac.get_roles() == []
        assert not ac.has_role("admin")

    def test_has_role(self, ac):
        """Test role existence checks"""
        ac.grant("user").execute("read").on("article")

        assert ac.has_role("user")
        assert not ac.has_role("admin")
        assert not ac.has_role(["user", "admin"])
        assert not ac.has_role([])

    def test_commit_mapping(self, ac):
        """Test committing a grant directly"""
        grant = ac.commit({"role": "user", "resource": "article", "action": "read"})

        assert grant.attributes == ("*",)
        assert ac.can("user").execute("read").on("article").granted


class TestGrantBuilder:
    """Test the fluent grant builder"""

    def test_grant_with_attributes(self, ac):
        """Test granting with negated attributes"""
        ac.grant("user").execute("create").on("photo", ["*", "!size"])
        permission = ac.can("user").execute("create").on("photo")

        assert permission.granted
        assert permission.attributes == ["*", "!size"]
        assert not ac.can("user").execute("read").on("photo").granted

    def test_negated_resource(self, ac):
        """Test granting on everything but one resource"""
        ac.grant("user1").execute("create").on("!photo")

        assert not ac.can("user1").execute("create").on("photo").granted
        assert ac.can("user1").execute("create").on("video").granted

    def test_negated_action(self, ac):
        """Test granting every action but one"""
        ac.grant("user").execute(["*", "!create"]).on("article")

        assert ac.can("user").execute("update").on("article").granted
        assert ac.can("user").execute("delete").on("article").granted
        assert not ac.can("user").execute("create").on("article").granted

    def test_chained_grants(self, ac):
        """Test several grants from one builder"""
        ac.grant("user") \
            .execute("create").on("article") \
            .execute("read").on("video", []) \
            .execute("update").on("image", ["title"])

        assert ac.can("user").execute("create").on("article").attributes == ["*"]
        assert not ac.can("user").execute("read").on("video").granted
        assert ac.can("user").execute("update").on("image").attributes == ["title"]

    def test_attributes_reset_after_on(self, ac):
        """Test that attributes do not leak into the next grant"""
        ac.grant("user").execute("read").on("video", ["title"]).on("image")

        assert ac.can("user").execute("read").on("image").attributes == ["*"]

    def test_object_grants(self, ac):
        """Test grants given as mappings"""
        ac.grant({"role": "o1", "resource": "book", "action": "create"})
        ac.grant({"role": "o2", "resource": "book", "action": "read", "attributes": ["title"]})
        ac.grant({"role": "o3", "resource": "book"}).execute("update").on()

        assert ac.can("o1").execute("create").on("book").granted
        assert ac.can("o2").execute("read").on("book").attributes == ["title"]
        assert ac.can("o3").execute("update").on("book").granted

    def test_switching_roles_in_a_chain(self, ac):
        """Test starting a new grant from a builder"""
        ac.grant("r1").execute("read").on("a").grant("r2").execute("read").on("b")

        assert ac.can("r1").execute("read").on("a").granted
        assert ac.can("r2").execute("read").on("b").granted
        assert not ac.can("r1").execute("read").on("b").granted

    def test_separated_role_names(self, ac):
        """Test comma and semicolon separated role lists"""
        ac.grant("role2; role3, editor; viewer, agent").execute("delete").on("book")

        assert ac.get_roles() == ["role2", "role3", "editor", "viewer", "agent"]

    def test_multiple_roles_and_resources(self, ac):
        """Test granting several roles on several resources"""
        ac.grant("admin, user").execute("create").on("profile, video")
        for role in ("admin", "user"):
            for resource in ("profile", "video"):
                assert ac.can(role).execute("create").on(resource).granted

        ac.grant("admin, user").execute("create").on("profile, video", "*,!id")
        assert ac.can("admin").execute("create").on("profile").attributes == ["*"]
        assert ac.can("user").execute("create").on("video").attributes == ["*"]
        assert not ac.can("user").execute("create").on("non-existent").granted

    def test_allow_and_access_aliases(self, ac):
        """Test builder aliases"""
        ac.allow("user").execute("read").on("article")
        assert ac.access("user").execute("read").on("article").granted

    def test_deny_conveys_nothing(self, ac):
        """Test explicit denies"""
        ac.deny("guest").execute("read").on("article", ["*"])

        assert ac.has_role("guest")
        assert not ac.can("guest").execute("read").on("article").granted

    def test_builder_validation(self, ac):
        """Test missing builder fields"""
        with pytest.raises(InvalidInputError):
            ac.grant().execute("create").on("article")
        with pytest.raises(InvalidInputError):
            ac.grant("").execute("create").on("article")
        with pytest.raises(InvalidInputError):
            ac.grant("user").execute("create").on()
        with pytest.raises(InvalidInputError):
            ac.grant("user").on("article")


class TestQueries:
    """Test permission queries"""

    def test_permission_echoes_query(self, ac):
        """Test the fields of a permission"""
        ac.grant("user").execute("read").on("article", ["title", "body"])
        permission = ac.permission({"role": "user", "resource": "article", "action": "read"})

        assert isinstance(permission, Permission)
        assert permission.roles == ["user"]
        assert permission.resource == "article"
        assert permission.action == "read"
        assert permission.to_dict() == {
            "granted": True,
            "roles": ["user"],
            "resource": "article",
            "action": "read",
            "attributes": ["title", "body"],
        }

    def test_permission_accepts_query_info(self, ac):
        """Test querying with a QueryInfo"""
        ac.grant("user").execute("read").on("article")
        query = QueryInfo(role="user", resource="article", action="read")

        assert ac.permission(query).granted

    def test_permission_filter(self, ac):
        """Test filtering data through a permission"""
        ac.grant("user").execute("read").on("account", ["*", "!id"])
        permission = ac.can("user").execute("read").on("account")

        assert permission.filter({"id": 1, "name": "ann"}) == {"name": "ann"}

    def test_multiple_roles_union_attributes(self, ac):
        """Test querying several roles at once"""
        ac.grant("reader").execute("read").on("article", ["title"])
        ac.grant("auditor").execute("read").on("article", ["*", "!body"])

        permission = ac.can(["reader", "auditor"]).execute("read").on("article")
        assert permission.attributes == ["*", "!body"]

        permission = ac.can("reader, auditor").execute("read").on("article")
        assert permission.roles == ["reader", "auditor"]

    def test_conditional_grant(self, ac):
        """Test grants with a condition"""
        ac.grant("user").condition(SPORTS).execute("create").on("article")

        assert ac.can("user").context({"category": "sports"}).execute("create").on("article").granted
        assert not ac.can("user").context({"category": "politics"}).execute("create").on("article").granted
        assert not ac.can("user").execute("create").on("article").granted

    def test_skip_conditions(self, ac):
        """Test bypassing conditions"""
        ac.grant("user").when(SPORTS).execute("create").on("article")

        assert ac.can("user").execute("create").on("article", True).granted
        assert not ac.can("user").execute("create").on("article", False).granted
        assert ac.can("user").execute("create").skip_conditions().on("article").granted
        assert ac.permission({
            "role": "user",
            "resource": "article",
            "action": "create",
            "skip_conditions": True,
        }).granted

    def test_skip_conditions_is_not_overridden_by_on(self, ac):
        """Test that on() cannot turn off an earlier skip_conditions()"""
        ac.grant("user").when(SPORTS).execute("create").on("article")

        query = ac.can("user").execute("create").skip_conditions()
        assert query.on("article", False).granted
        assert ac.can("user").execute("create").skip_conditions(False).on("article", True).granted

    def test_query_fields_are_stripped(self, ac):
        """Test surrounding whitespace in resource and action names"""
        ac.grant("u").execute("read").on("photo")

        permission = ac.can("u").execute("read").on(" photo ")
        assert permission.granted
        assert permission.resource == "photo"

        permission = ac.can("u").execute("  read\t").on("photo")
        assert permission.granted
        assert permission.action == "read"
        assert ac.allowing_roles({"resource": " photo", "action": "read "}) == ["u"]

    def test_invalid_queries(self, ac):
        """Test missing query fields"""
        ac.grant("user").execute("create").on("article")

        with pytest.raises(InvalidInputError):
            ac.can("").execute("create").on("article")
        with pytest.raises(InvalidInputError):
            ac.can("user").execute("create").on()
        with pytest.raises(InvalidInputError):
            ac.can("user").on("article")
        with pytest.raises(InvalidInputError):
            ac.permission({"role": "user", "resource": "article", "action": "create", "foo": 1})

    def test_unknown_role(self, ac):
        """Test querying a role that does not exist"""
        ac.grant("user").execute("create").on("article")

        with pytest.raises(RoleNotFoundError, match="Role not found"):
            ac.can("invalid-role").execute("create").on("article")

    def test_errors_are_access_control_errors(self, ac):
        """Test the common error base"""
        with pytest.raises(AccessControlError) as exc_info:
            ac.can("nobody").execute("read").on("article")

        assert AccessControl.is_access_control_error(exc_info.value)
        assert exc_info.value.code == "role_not_found"
        assert not AccessControl.is_access_control_error(ValueError("x"))

    def test_decision_logging(self, caplog):
        """Test decision log level"""
        ac = AccessControl(settings=Settings(log_decisions=True))
        ac.grant("user").execute("read").on("article")

        with caplog.at_level(logging.INFO, logger="rolegate.engine"):
            ac.can("user").execute("read").on("article")
            ac.can("user").execute("delete").on("article")

        assert "Permission granted" in caplog.text
        assert "Permission denied" in caplog.text

        granted, denied = [r for r in caplog.records if r.name == "rolegate.engine"][-2:]
        assert granted.granted is True
        assert denied.granted is False
        assert granted.roles == ["user"]
        assert denied.action == "delete"
        assert denied.resource == "article"

    def test_grant_logging_carries_roles(self, ac, caplog):
        """Test structured fields on grant and extension log records"""
        with caplog.at_level(logging.DEBUG, logger="rolegate.grants"):
            ac.grant("user").execute("read").on("article")
            ac.extend_role("editor", "user")

        records = [r for r in caplog.records if r.name == "rolegate.grants"]
        assert records[0].roles == ["user"]
        assert records[0].resources == ["article"]
        assert records[-1].roles == ["editor"]
        assert records[-1].extenders == ["user"]


class TestRoleExtension:
    """Test role inheritance"""

    def test_extended_role_inherits_grants(self, ac):
        """Test inheriting grants"""
        ac.grant("user").execute("read").on("article")
        ac.grant("admin").extend("user").execute("delete").on("article")

        assert ac.can("admin").execute("read").on("article").granted
        assert ac.can("admin").execute("delete").on("article").granted
        assert not ac.can("user").execute("delete").on("article").granted

    def test_extend_role_creates_missing_roles(self, ac):
        """Test extending into a new role"""
        ac.grant("admin").execute("read").on("article")
        ac.grant("role2, role3").execute("read").on("video")
        ac.extend_role("onur", "admin")
        ac.extend_role("onur", ["role2", "role3"])

        assert list(ac.get_grants()["onur"].extends) == ["admin", "role2", "role3"]
        assert ac.can("onur").execute("read").on("video").granted

    def test_extend_unknown_role(self, ac):
        """Test extending a role that does not exist"""
        ac.grant("user").execute("read").on("article")

        with pytest.raises(RoleNotFoundError):
            ac.extend_role("user", "ghost")
        with pytest.raises(RoleNotFoundError):
            ac.get_role("ghost")

        assert ac.get_role("user").extends == {}

    def test_scores(self, ac):
        """Test that extending raises the score"""
        ac.grant("user").execute("read").on("article")
        ac.extend_role("editor", "user")
        ac.extend_role("admin", "editor")

        grants = ac.get_grants()
        assert grants["user"].score == 1
        assert grants["editor"].score == 2
        assert grants["admin"].score == 4

    def test_direct_self_extension(self, ac):
        """Test extending a role with itself"""
        with pytest.raises(SelfExtensionError):
            ac.grant("roleX").extend("roleX")
        with pytest.raises(SelfExtensionError):
            ac.grant(["admin2", "roleX"]).extend(["roleX", "admin3"])

    def test_transitive_self_extension(self, ac):
        """Test extension cycles through other roles"""
        ac.grant("user").condition(SPORTS).execute("create").on("book")
        ac.extend_role("editor", "user")
        ac.grant("editor").execute("delete").on("book")

        with pytest.raises(SelfExtensionError):
            ac.extend_role("user", "editor")
        with pytest.raises(SelfExtensionError):
            ac.extend_role("user", "user")

        assert list(ac.get_grants()["user"].extends) == []

    def test_self_extension_ignores_conditions(self, ac):
        """Test cycles through conditional edges"""
        ac.grant("user").execute("read").on("article")
        ac.extend_role("editor", "user", SPORTS)

        with pytest.raises(SelfExtensionError):
            ac.extend_role("user", "editor")

    def test_conditional_extension(self, ac):
        """Test extending under a condition"""
        ac.grant("editor").execute("create").on("post")
        ac.extend_role("sports/editor", "editor", SPORTS)
        ac.extend_role("politics/editor", "editor", POLITICS)

        assert ac.can("editor").execute("create").on("post").granted
        assert not ac.can("sports/editor").execute("create").on("post").granted
        assert not ac.can("sports/editor") \
            .context({"category": "politics"}).execute("create").on("post").granted
        assert ac.can("sports/editor") \
            .context({"category": "sports"}).execute("create").on("post").granted
        assert ac.can("politics/editor") \
            .context({"category": "politics"}).execute("create").on("post").granted

    def test_multi_level_conditional_extension(self, ac):
        """Test conditions on several extension levels"""
        ac.grant("editor").execute("create").on("post")
        ac.extend_role("sports/editor", "editor", SPORTS)
        ac.extend_role("politics/editor", "editor", POLITICS)
        ac.extend_role("sports-and-politics/editor", ["sports/editor", "politics/editor"])
        ac.extend_role(
            "sports-and-politics/drafts",
            "sports-and-politics/editor",
            {"Fn": "EQUALS", "args": {"status": "draft"}},
        )

        def can_create(context):
            return ac.can("sports-and-politics/drafts") \
                .context(context).execute("create").on("post").granted

        assert can_create({"category": "sports", "status": "draft"})
        assert can_create({"category": "politics", "status": "draft"})
        assert not can_create({"category": "tech", "status": "draft"})
        assert not can_create({"category": "sports", "status": "published"})

    def test_extension_chain(self, ac):
        """Test inheriting through a conditional edge and a plain edge"""
        ac.grant("editor").execute("update").on("article")
        ac.extend_role("sports/editor", "editor", SPORTS)
        ac.extend_role("all/editor", "sports/editor")

        assert ac.can("all/editor").context({"category": "sports"}) \
            .execute("update").on("article").granted
        assert not ac.can("all/editor").context({"category": "politics"}) \
            .execute("update").on("article").granted

    def test_remove_roles(self, ac):
        """Test removing roles and their incoming edges"""
        ac.grant("editor").execute("create").on("post")
        ac.grant("agent").execute("read").on("post")
        ac.extend_role("admin", ["editor", "agent"])
        ac.extend_role("sports/editor", "editor", SPORTS)

        ac.remove_roles(["editor", "agent"])

        assert ac.get_roles() == ["admin", "sports/editor"]
        assert list(ac.get_grants()["admin"].extends) == []
        assert not ac.can("sports/editor") \
            .context({"category": "sports"}).execute("create").on("post").granted
        assert not ac.can("sports/editor") \
            .context({"category": "politics"}).execute("create").on("post").granted

    def test_remove_unknown_roles_is_ignored(self, ac):
        """Test removing roles that do not exist"""
        ac.grant("user").execute("read").on("article")
        ac.remove_roles("ghost")

        assert ac.get_roles() == ["user"]

    def test_flatten_roles(self, ac):
        """Test role flattening order and conditions"""
        ac.grant("user").execute("read").on("article")
        ac.extend_role("editor", "user")
        ac.extend_role("sports/editor", "editor", SPORTS)
        ac.extend_role("admin", ["sports/editor", "user"])

        assert ac.flatten_roles("admin") == ["admin", "sports/editor", "user"]
        assert ac.flatten_roles("admin", {"category": "sports"}) == [
            "admin", "sports/editor", "user", "editor",
        ]
        assert ac.flatten_roles("admin", skip_conditions=True) == [
            "admin", "sports/editor", "user", "editor",
        ]

    def test_flatten_is_idempotent(self, ac):
        """Test flattening an already flat role list"""
        ac.grant("user").execute("read").on("article")
        ac.extend_role("editor", "user")
        ac.extend_role("admin", "editor")

        flat = ac.flatten_roles(["admin", "editor"])
        assert ac.flatten_roles(flat) == flat


class TestAllowedResourcesAndActions:
    """Test listing granted resources and actions"""

    @pytest.fixture(autouse=True)
    def grants(self, ac):
        ac.grant("user").condition(SPORTS).execute("create").on("article")
        ac.grant("user").execute("*").on("image")
        ac.extend_role("admin", "user")
        ac.grant("admin").execute("delete").on("article")
        ac.grant("admin").execute("*").on("category")
        ac.extend_role("owner", "admin")
        ac.grant("owner").execute("*").on("video")
        self.ac = ac

    def test_allowed_resources(self):
        """Test resources per role"""
        ac = self.ac
        assert sorted(ac.allowed_resources({"role": "user"})) == ["article", "image"]
        assert sorted(ac.allowed_resources({"role": "admin"})) == ["article", "category", "image"]
        assert sorted(ac.allowed_resources({"role": "owner"})) == [
            "article", "category", "image", "video",
        ]
        assert sorted(ac.allowed_resources({"role": ["admin", "owner"]})) == [
            "article", "category", "image", "video",
        ]

    def test_allowed_resources_with_context(self):
        """Test that a context enables conditions"""
        ac = self.ac
        assert sorted(ac.allowed_resources({
            "role": "user", "context": {"category": "sports"},
        })) == ["article", "image"]
        assert ac.allowed_resources({
            "role": "user", "context": {"category": "politics"},
        }) == ["image"]

    def test_allowed_actions(self):
        """Test actions per role and resource"""
        ac = self.ac
        assert ac.allowed_actions({"role": "user", "resource": "article"}) == ["create"]
        assert sorted(ac.allowed_actions({"role": ["admin", "user"], "resource": "article"})) == [
            "create", "delete",
        ]
        assert ac.allowed_actions({"role": "admin", "resource": "category"}) == ["*"]
        assert ac.allowed_actions({"role": "owner", "resource": "video"}) == ["*"]

    def test_allowed_actions_with_context(self):
        """Test conditional actions"""
        ac = self.ac
        assert ac.allowed_actions({
            "role": "user", "resource": "article", "context": {"category": "sports"},
        }) == ["create"]
        assert ac.allowed_actions({
            "role": "user", "resource": "article", "context": {"category": "politics"},
        }) == []

    def test_allowed_actions_needs_resource(self):
        """Test missing resource"""
        with pytest.raises(InvalidInputError):
            self.ac.allowed_actions({"role": "user"})

    def test_unknown_role(self):
        """Test listing for a missing role"""
        with pytest.raises(RoleNotFoundError):
            self.ac.allowed_resources({"role": "ghost"})


class TestAllowingRoles:
    """Test the reverse 'which roles are allowed' query"""

    @pytest.fixture(autouse=True)
    def grants(self, ac, conditional_grants_object):
        ac.set_grants(conditional_grants_object)
        ac.grant("user").condition(SPORTS).execute("create").on("blog")
        ac.grant("user").execute("*").on("image")
        ac.extend_role("sports/editor", "user")
        ac.extend_role("admin", "user")
        ac.grant("admin").execute("*").on("category")
        ac.extend_role("owner", "admin")
        ac.grant("owner").execute("*").on(["video", "role"])
        self.ac = ac

    def allowing(self, resource, action="create", context=None):
        return sorted(self.ac.allowing_roles({
            "resource": resource, "action": action, "context": context,
        }))

    def test_unconditional_grants(self):
        """Test roles allowed directly or through extension"""
        assert self.allowing("image") == ["admin", "owner", "sports/editor", "user"]
        assert self.allowing("video") == ["owner"]
        assert self.allowing("category") == ["admin", "owner"]

    def test_conditional_grants(self):
        """Test roles allowed under a context"""
        assert self.allowing("blog") == []
        assert self.allowing("blog", context={"category": "politics"}) == []
        assert self.allowing("blog", context={"category": "sports"}) == [
            "admin", "owner", "sports/editor", "user",
        ]
        assert self.allowing("article", context={"category": "sports"}) == [
            "sports/editor", "sports/writer",
        ]

    def test_after_removing_role(self):
        """Test that removed roles no longer grant through extension"""
        self.ac.remove_roles("user")
        assert self.allowing("blog", context={"category": "sports"}) == []

    def test_requires_resource_and_action(self):
        """Test missing query fields"""
        with pytest.raises(InvalidInputError):
            self.ac.allowing_roles({"resource": "image"})


class TestCustomConditionFunctions:
    """Test custom condition functions on the engine"""

    def test_inline_function(self, ac):
        """Test a callable condition"""
        ac.grant("user").condition(lambda context: context["category"] != "politics") \
            .execute("create").on("article")

        assert ac.can("user").context({"category": "sports"}).execute("create").on("article").granted
        assert not ac.can("user").context({"category": "politics"}).execute("create").on("article").granted

    def test_registered_function(self, ac):
        """Test conditions referring to functions by name"""
        ac.register_condition_function("isOwner", lambda context: context["uid"] == context["owner"])
        ac.grant("user").condition("isOwner").execute("update").on("profile")

        assert ac.can("user").context({"uid": 1, "owner": 1}).execute("update").on("profile").granted
        assert not ac.can("user").context({"uid": 1, "owner": 2}).execute("update").on("profile").granted

    def test_registries_are_per_engine(self, ac):
        """Test that engines do not share condition functions"""
        ac.register_condition_function("isOwner", lambda context: True)
        other = AccessControl(settings=Settings())

        assert "isOwner" in ac.registry
        assert "isOwner" not in other.registry

    def test_set_custom_condition_functions(self, ac):
        """Test replacing all condition functions"""
        ac.register_condition_function("old", lambda context: True)
        ac.set_custom_condition_functions({"new": lambda context: True})

        assert ac.registry.names() == ["custom:new"]

    def test_flat_list_with_callable_conditions(self):
        """Test loading grants with inline functions"""
        ac = AccessControl([
            {
                "role": "user",
                "resource": "article",
                "action": "create",
                "condition": lambda context: context["category"] == "sports",
            },
        ], settings=Settings())

        assert ac.can("user").context({"category": "sports"}).execute("create").on("article").granted
        assert not ac.can("user").context({"category": "tech"}).execute("create").on("article").granted

    def test_function_errors_propagate(self, ac):
        """Test errors from condition functions"""
        def broken(context):
            raise RuntimeError("lookup failed")

        ac.grant("user").condition(broken).execute("read").on("article")

        with pytest.raises(RuntimeError, match="lookup failed"):
            ac.can("user").context({"a": 1}).execute("read").on("article")
