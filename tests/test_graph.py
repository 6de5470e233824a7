"""
Graph builder and layout tests.
"""
import os

import pytest

from infragraph.graph import layout
from infragraph.graph.builder import build_graph
from infragraph.models.plan import UNKNOWN_VALUE
from infragraph.models.resource import CloudResource
from infragraph.parsers import cloudformation, hcl, plan, tfstate
from infragraph.providers import get_provider

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def _res(rid, **attrs):
    rtype, name = rid.split(".", 1)
    return CloudResource(id=rid, type=rtype, name=name, display_name=name, attributes=attrs)


def _all_graphs():
    aws = get_provider("aws")
    graphs = []
    resources, warnings = tfstate.parse_file(os.path.join(FIXTURES, "sample.tfstate"))
    graphs.append(build_graph(resources, warnings, aws))
    resources, _, warnings = plan.parse_file(os.path.join(FIXTURES, "plan.json"))
    graphs.append(build_graph(resources, warnings, aws))
    resources, warnings = hcl.parse_files(
        [os.path.join(FIXTURES, "main.tf"), os.path.join(FIXTURES, "network.tf")]
    )
    graphs.append(build_graph(resources, warnings, aws))
    for name in ("stack.json", "stack.yaml"):
        resources, warnings = cloudformation.parse_file(os.path.join(FIXTURES, name))
        graphs.append(build_graph(resources, warnings, aws))
    return graphs


class TestGraphFromState:
    def setup_method(self):
        resources, warnings = tfstate.parse_file(os.path.join(FIXTURES, "sample.tfstate"))
        self.result = build_graph(resources, warnings, get_provider("aws"))

    def test_node_per_resource_in_order(self):
        assert [n.id for n in self.result.nodes] == [r.id for r in self.result.resources]
        assert len(self.result.nodes) == 8

    def test_containment(self):
        parent = {n.id: n.parent for n in self.result.nodes}
        assert parent["aws_vpc.main"] is None
        assert parent["aws_subnet.public"] == "aws_vpc.main"
        assert parent["aws_internet_gateway.gw"] == "aws_vpc.main"
        assert parent["aws_security_group.web"] == "aws_vpc.main"
        assert parent["aws_instance.web[0]"] == "aws_subnet.public"
        assert parent["aws_instance.web[1]"] == "aws_subnet.public"
        assert parent["aws_db_instance.db"] is None
        assert parent["aws_s3_bucket.assets"] is None

    def test_containment_edges_dropped(self):
        assert sorted(e.id for e in self.result.edges) == [
            "e-aws_db_instance.db-aws_security_group.web",
            "e-aws_instance.web[0]-aws_security_group.web",
            "e-aws_instance.web[1]-aws_security_group.web",
        ]
        assert all(e.label == "secured by" for e in self.result.edges)

    def test_render_categories(self):
        node = self.result.node("aws_internet_gateway.gw")
        assert node.render_category == "igw"
        assert self.result.node("aws_vpc.main").render_category == "vpc"

    def test_subnet_layout(self):
        subnet = self.result.node("aws_subnet.public")
        assert (subnet.position.x, subnet.position.y) == (30, 50)
        assert (subnet.size.width, subnet.size.height) == (480, 170)
        web0 = self.result.node("aws_instance.web[0]")
        web1 = self.result.node("aws_instance.web[1]")
        assert (web0.position.x, web0.position.y) == (20, 50)
        assert (web1.position.x, web1.position.y) == (250, 50)
        assert web0.size is None

    def test_vpc_layout(self):
        vpc = self.result.node("aws_vpc.main")
        assert (vpc.position.x, vpc.position.y) == (0, 0)
        assert (vpc.size.width, vpc.size.height) == (540, 410)
        igw = self.result.node("aws_internet_gateway.gw")
        sg = self.result.node("aws_security_group.web")
        assert (igw.position.x, igw.position.y) == (30, 260)
        assert (sg.position.x, sg.position.y) == (260, 260)

    def test_root_column_grouped_by_type(self):
        db = self.result.node("aws_db_instance.db")
        s3 = self.result.node("aws_s3_bucket.assets")
        assert (db.position.x, db.position.y) == (600, 0)
        assert (s3.position.x, s3.position.y) == (600, 190)

    def test_to_dict_shape(self):
        data = self.result.to_dict()
        node = next(n for n in data["nodes"] if n["id"] == "aws_subnet.public")
        assert node["parent"] == "aws_vpc.main"
        assert node["size"] == {"width": 480, "height": 170}
        assert node["renderCategory"] == "subnet"
        assert node["resource"]["displayName"] == "public-a"
        assert "actions" not in data


class TestBuilderRules:
    def setup_method(self):
        self.aws = get_provider("aws")

    def test_plan_placeholder_never_resolves(self):
        resources = [
            _res("aws_vpc.a", id=UNKNOWN_VALUE),
            _res("aws_subnet.b", id=UNKNOWN_VALUE, vpc_id=UNKNOWN_VALUE),
        ]
        result = build_graph(resources, [], self.aws)
        assert result.node("aws_subnet.b").parent is None
        assert result.edges == []

    def test_subnet_ids_plural_uses_first(self):
        resources = [
            _res("aws_vpc.v", id="vpc-1"),
            _res("aws_subnet.a", id="subnet-a", vpc_id="vpc-1"),
            _res("aws_subnet.b", id="subnet-b", vpc_id="vpc-1"),
            _res("aws_lb.lb", id="lb-1", subnet_ids=["subnet-b", "subnet-a"]),
        ]
        result = build_graph(resources, [], self.aws)
        assert result.node("aws_lb.lb").parent == "aws_subnet.b"

    @pytest.mark.parametrize("subnet_id", [UNKNOWN_VALUE, "subnet-missing"])
    def test_subnet_ids_used_when_subnet_id_unresolved(self, subnet_id):
        resources = [
            _res("aws_vpc.v", id="vpc-1"),
            _res("aws_subnet.b", id="subnet-b", vpc_id="vpc-1"),
            _res("aws_lb.lb", id="lb-1", subnet_id=subnet_id, subnet_ids=["subnet-b"]),
        ]
        result = build_graph(resources, [], self.aws)
        assert result.node("aws_lb.lb").parent == "aws_subnet.b"

    def test_parent_must_have_container_type(self):
        resources = [
            _res("aws_s3_bucket.b", id="not-a-subnet"),
            _res("aws_instance.i", id="i-1", subnet_id="not-a-subnet"),
        ]
        result = build_graph(resources, [], self.aws)
        assert result.node("aws_instance.i").parent is None

    def test_falls_back_to_outer_container(self):
        resources = [
            _res("aws_vpc.v", id="vpc-1"),
            _res("aws_security_group.sg", id="sg-1", vpc_id="vpc-1", subnet_id="missing"),
        ]
        result = build_graph(resources, [], self.aws)
        assert result.node("aws_security_group.sg").parent == "aws_vpc.v"

    def test_dependency_fallback_edge(self):
        a = _res("aws_s3_bucket.a", id="a")
        b = _res("aws_lambda_function.f", id="f")
        b.dependencies = ["aws_s3_bucket.a", "aws_sqs_queue.missing"]
        result = build_graph([a, b], [], self.aws)
        assert [(e.id, e.label) for e in result.edges] == [
            ("e-aws_lambda_function.f-aws_s3_bucket.a", "depends on"),
        ]

    def test_attribute_edge_wins_over_dependency(self):
        sg = _res("aws_security_group.sg", id="sg-1")
        inst = _res("aws_instance.i", id="i-1", vpc_security_group_ids=["sg-1", "sg-1"])
        inst.dependencies = ["aws_security_group.sg"]
        result = build_graph([sg, inst], [], self.aws)
        assert len(result.edges) == 1
        assert result.edges[0].label == "secured by"

    def test_self_reference_ignored(self):
        result = build_graph([_res("aws_instance.i", id="i-1", instance_id="i-1")], [], self.aws)
        assert result.edges == []

    def test_duplicate_ids_keep_first(self):
        result = build_graph(
            [_res("aws_s3_bucket.a", id="x"), _res("aws_s3_bucket.a", id="y")], [], self.aws
        )
        assert len(result.nodes) == 1
        assert result.nodes[0].resource.attributes["id"] == "x"

    def test_orphan_subnet_stacks_in_container_column(self):
        resources = [
            _res("aws_vpc.v", id="vpc-1"),
            _res("aws_subnet.lonely", id="subnet-9"),
        ]
        result = build_graph(resources, [], self.aws)
        vpc, subnet = result.node("aws_vpc.v"), result.node("aws_subnet.lonely")
        assert subnet.parent is None
        assert subnet.position.x == 0
        assert subnet.position.y == vpc.size.height + layout.OUTER_GAP
        assert (subnet.size.width, subnet.size.height) == (260, 170)

    def test_subnet_rows_capped(self):
        resources = [_res("aws_vpc.v", id="vpc-1")] + [
            _res(f"aws_subnet.s{i}", id=f"subnet-{i}", vpc_id="vpc-1") for i in range(4)
        ]
        result = build_graph(resources, [], self.aws)
        first, fourth = result.node("aws_subnet.s0"), result.node("aws_subnet.s3")
        assert fourth.position.x == first.position.x
        assert fourth.position.y == first.position.y + 170 + layout.INNER_GAP_Y

    def test_empty_input(self):
        result = build_graph([], [], self.aws)
        assert (result.nodes, result.edges, result.resources, result.warnings) == ([], [], [], [])

    def test_warnings_passed_through(self):
        result = build_graph([], ["w1"], self.aws)
        assert result.warnings == ["w1"]

    def test_azure_containment(self):
        azure = get_provider("azure")
        resources = [
            _res("azurerm_virtual_network.net", id="/subs/vnet", name="vnet-main"),
            _res("azurerm_subnet.app", id="/subs/vnet/subnets/app", virtual_network_name="azurerm_virtual_network.net"),
            _res("azurerm_network_interface.nic", id="/subs/nic", subnet_id="/subs/vnet/subnets/app"),
        ]
        result = build_graph(resources, [], azure)
        assert result.node("azurerm_subnet.app").parent == "azurerm_virtual_network.net"
        assert result.node("azurerm_network_interface.nic").parent == "azurerm_subnet.app"


class TestInnerSize:
    @pytest.mark.parametrize("n, expected", [
        (0, (260, 170)),
        (1, (260, 170)),
        (2, (480, 170)),
        (3, (480, 290)),
        (5, (480, 410)),
    ])
    def test_inner_size(self, n, expected):
        assert layout.inner_size(n) == expected


class TestGraphProperties:
    def setup_method(self):
        self.graphs = _all_graphs()

    def test_unique_node_ids(self):
        for g in self.graphs:
            ids = [n.id for n in g.nodes]
            assert len(ids) == len(set(ids))

    def test_edges_reference_nodes(self):
        for g in self.graphs:
            ids = {n.id for n in g.nodes}
            for e in g.edges:
                assert e.source in ids and e.target in ids
                assert e.source != e.target
                assert e.id == f"e-{e.source}-{e.target}"

    def test_no_duplicate_edges(self):
        for g in self.graphs:
            ids = [e.id for e in g.edges]
            assert len(ids) == len(set(ids))

    def test_no_edge_to_own_parent(self):
        for g in self.graphs:
            for e in g.edges:
                assert g.node(e.source).parent != e.target

    def test_containment_depth(self):
        for g in self.graphs:
            for n in g.nodes:
                depth, current = 0, n
                while current.parent is not None:
                    current = g.node(current.parent)
                    assert current is not None
                    depth += 1
                assert depth <= 2

    def test_positions_and_sizes_non_negative(self):
        for g in self.graphs:
            for n in g.nodes:
                assert n.position.x >= 0 and n.position.y >= 0
                if n.size is not None:
                    assert n.size.width > 0 and n.size.height > 0

    def test_deterministic(self):
        again = _all_graphs()
        assert [g.to_dict() for g in self.graphs] == [g.to_dict() for g in again]
