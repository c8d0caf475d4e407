import pytest

from liqid_k8s.commands import (
    AutoCommand,
    Command,
    CommandType,
    LabelCommand,
    LinkCommand,
    NodesCommand,
    ResourcesCommand,
    UnlabelCommand,
    UnlinkCommand,
)
from liqid_k8s.config import Settings
from liqid_k8s.constants import GeneralType
from liqid_k8s.errors import ConfigurationError, InternalError
from liqid_k8s.inventory import DeviceInfo
from liqid_k8s.linkage import Linkage, read_linkage, write_linkage
from liqid_k8s.plan import Plan
from liqid_k8s.plan.actions import AnnotateNode, CreateGroup


@pytest.fixture
def linked(cluster):
    write_linkage(cluster, Linkage("10.0.0.5", "k8s"))
    return cluster


@pytest.fixture
def factory(fabric):
    addresses = []

    def make(address):
        addresses.append(address)
        return fabric

    make.addresses = addresses
    return make


def _make(command_cls, linked, factory, *args, **settings):
    return command_cls(Settings(**settings), *args, cluster_client=linked, fabric_client_factory=factory)


# ----------------------------------------------------------------------
# auto
# ----------------------------------------------------------------------
def test_auto_annotates_worker_nodes(linked, factory, fabric, capsys):
    assert _make(AutoCommand, linked, factory).process() is True

    assert factory.addresses == ["10.0.0.5"]
    assert linked.nodes["worker-1"].annotations == {
        "liqid.com/machine": "mach-a",
        "liqid.com/gpu": "2",
        "liqid.com/ssd": "1",
    }
    assert linked.nodes["worker-2"].annotations == {"liqid.com/machine": "mach-b", "liqid.com/gpu": "2"}
    assert linked.nodes["worker-3"].annotations == {}
    assert fabric.mutations() == []
    assert "The following annotations will be written:" in capsys.readouterr().out


def test_auto_dry_run_writes_nothing(linked, factory, capsys):
    assert _make(AutoCommand, linked, factory, no_update=True).process() is True
    assert linked.patches == []
    assert "would be written" in capsys.readouterr().out


def test_auto_refuses_existing_annotations(linked, factory, capsys):
    linked.nodes["worker-3"].annotations["liqid.com/gpu"] = "1"
    assert _make(AutoCommand, linked, factory).process() is False
    err = capsys.readouterr().err
    assert "ERROR:The following worker nodes have Liqid Cluster-related annotations:" in err
    assert "auto command will not be performed unless forced." in err
    assert linked.patches == []


def test_auto_forced_clears_existing_annotations(linked, factory):
    linked.nodes["worker-3"].annotations["liqid.com/gpu"] = "1"
    assert _make(AutoCommand, linked, factory, force=True).process() is True
    assert linked.nodes["worker-3"].annotations == {}
    assert linked.nodes["worker-1"].annotations["liqid.com/machine"] == "mach-a"


def test_auto_stops_on_allocation_errors(linked, factory, fabric, capsys):
    fabric.infos[1] = DeviceInfo(0x101, "Dell", "R740", "n/a")
    assert _make(AutoCommand, linked, factory).process() is False
    err = capsys.readouterr().err
    assert "ERROR:CPU Resource 'cpu1' has no description" in err
    assert "Errors prevent further processing." in err
    assert linked.patches == []


def test_auto_without_linkage_is_a_configuration_error(cluster, factory):
    with pytest.raises(ConfigurationError):
        _make(AutoCommand, cluster, factory).process()


def test_auto_with_unknown_group_is_a_configuration_error(cluster, factory):
    write_linkage(cluster, Linkage("10.0.0.5", "missing"))
    with pytest.raises(ConfigurationError):
        _make(AutoCommand, cluster, factory).process()


def test_auto_without_worker_nodes_fails(fake_cluster_class, worker_nodes, factory, capsys):
    cluster = fake_cluster_class(nodes=[n for n in worker_nodes if n.is_control_plane])
    write_linkage(cluster, Linkage("10.0.0.5", "k8s"))
    assert _make(AutoCommand, cluster, factory).process() is False
    assert "not reporting any worker nodes" in capsys.readouterr().err


def test_auto_logs_in_and_out_with_credentials(cluster, factory, fabric):
    write_linkage(cluster, Linkage("10.0.0.5", "k8s", "admin", "pw"))
    assert _make(AutoCommand, cluster, factory).process() is True
    assert fabric.calls[0] == ("login", "K8SInteg", "admin", "pw")
    assert fabric.calls[-1] == ("logout",)


# ----------------------------------------------------------------------
# link / unlink
# ----------------------------------------------------------------------
def test_link_writes_linkage(cluster, factory, fabric):
    command = _make(LinkCommand, cluster, factory, "10.0.0.5", "k8s", "admin", "pw")
    assert command.process() is True
    assert read_linkage(cluster) == Linkage("10.0.0.5", "k8s", "admin", "pw")
    assert ("login", "K8SInteg", "admin", "pw") in fabric.calls


def test_link_refuses_to_replace_unless_forced(linked, factory):
    assert _make(LinkCommand, linked, factory, "10.0.0.9", "spare").process() is False
    assert read_linkage(linked).address == "10.0.0.5"

    assert _make(LinkCommand, linked, factory, "10.0.0.9", "spare", force=True).process() is True
    assert read_linkage(linked) == Linkage("10.0.0.9", "spare")


def test_link_to_unknown_group_fails(cluster, factory, capsys):
    assert _make(LinkCommand, cluster, factory, "10.0.0.5", "nope").process() is False
    assert cluster.config_maps == {}
    assert "Group 'nope' does not exist" in capsys.readouterr().err


def test_link_dry_run_leaves_cluster_untouched(cluster, factory):
    assert _make(LinkCommand, cluster, factory, "10.0.0.5", "k8s", no_update=True).process() is True
    assert cluster.config_maps == {}


def test_unlink_removes_linkage(linked, factory):
    assert _make(UnlinkCommand, linked, factory).process() is True
    assert read_linkage(linked) is None


def test_unlink_with_annotations(linked, factory):
    linked.nodes["worker-1"].annotations["liqid.com/machine"] = "mach-a"
    assert _make(UnlinkCommand, linked, factory).process() is False
    assert read_linkage(linked) is not None

    assert _make(UnlinkCommand, linked, factory, force=True).process() is True
    assert read_linkage(linked) is None
    assert linked.nodes["worker-1"].annotations == {}


# ----------------------------------------------------------------------
# label / unlabel
# ----------------------------------------------------------------------
def test_label_node(linked, factory):
    command = _make(LabelCommand, linked, factory, "worker-3", "mach-a", {GeneralType.gpu: 2, GeneralType.ssd: None})
    assert command.process() is True
    assert linked.nodes["worker-3"].annotations == {"liqid.com/machine": "mach-a", "liqid.com/gpu": "2"}


def test_label_rejects_counts_beyond_group(linked, factory, capsys):
    command = _make(LabelCommand, linked, factory, "worker-3", "mach-a", {GeneralType.gpu: 5})
    assert command.process() is False
    assert "has only 4" in capsys.readouterr().err
    assert linked.patches == []


def test_label_rejects_unknown_node_and_machine(linked, factory):
    assert _make(LabelCommand, linked, factory, "worker-9", "mach-a").process() is False
    assert _make(LabelCommand, linked, factory, "worker-3", "mach-z").process() is False
    assert linked.patches == []


def test_label_forced_replaces_existing_annotations(linked, factory):
    linked.nodes["worker-3"].annotations["liqid.com/ssd"] = "1"
    assert _make(LabelCommand, linked, factory, "worker-3", "mach-b").process() is False

    command = _make(LabelCommand, linked, factory, "worker-3", "mach-b", {GeneralType.gpu: 1}, force=True)
    assert command.process() is True
    assert linked.nodes["worker-3"].annotations == {"liqid.com/machine": "mach-b", "liqid.com/gpu": "1"}


def test_unlabel_one_node(cluster):
    cluster.nodes["worker-1"].annotations.update({"liqid.com/gpu": "1", "other.io/x": "y"})
    cluster.nodes["worker-2"].annotations["liqid.com/gpu"] = "1"
    assert UnlabelCommand(Settings(), node_name="worker-1", cluster_client=cluster).process() is True
    assert cluster.nodes["worker-1"].annotations == {"other.io/x": "y"}
    assert cluster.nodes["worker-2"].annotations == {"liqid.com/gpu": "1"}


def test_unlabel_all_nodes(cluster):
    cluster.nodes["worker-1"].annotations["liqid.com/gpu"] = "1"
    cluster.nodes["worker-2"].annotations["liqid.com/gpu"] = "1"
    assert UnlabelCommand(Settings(), all_nodes=True, cluster_client=cluster).process() is True
    assert all(not n.annotations for n in cluster.nodes.values())


def test_unlabel_needs_exactly_one_target(cluster):
    with pytest.raises(InternalError):
        UnlabelCommand(Settings(), cluster_client=cluster)
    with pytest.raises(InternalError):
        UnlabelCommand(Settings(), node_name="worker-1", all_nodes=True, cluster_client=cluster)


# ----------------------------------------------------------------------
# nodes / resources
# ----------------------------------------------------------------------
def test_nodes_lists_workers_with_annotations(cluster, capsys):
    cluster.nodes["worker-1"].annotations["liqid.com/machine"] = "mach-a"
    assert NodesCommand(Settings(), cluster_client=cluster).process() is True
    out = capsys.readouterr().out
    assert "    liqid.com/machine=mach-a" in out
    assert "worker-3" in out
    assert "control-1" not in out


def test_resources_for_linked_group(linked, factory, capsys):
    assert _make(ResourcesCommand, linked, factory).process() is True
    out = capsys.readouterr().out
    assert "Resources for group 'k8s':" in out
    assert "Machines for group 'k8s':" in out
    assert "gpu4" not in out
    assert "0x00000100" in out


def test_resources_for_whole_fabric(linked, factory, capsys):
    assert _make(ResourcesCommand, linked, factory, True).process() is True
    out = capsys.readouterr().out
    assert "All Resources:" in out
    assert "gpu4" in out
    assert "All Machines:" in out


# ----------------------------------------------------------------------
# plan execution
# ----------------------------------------------------------------------
class PlanOnlyCommand(Command):
    command_type = CommandType.AUTO

    def __init__(self, settings, plan, **kwargs):
        super().__init__(settings, **kwargs)
        self.plan = plan

    def process(self):
        self.run_plan(self.plan)
        return True


def test_run_plan_hands_fabric_client_to_fabric_plans(cluster, factory, fabric):
    command = PlanOnlyCommand(
        Settings(), Plan().add_action(CreateGroup(group_name="new")),
        cluster_client=cluster, fabric_client_factory=factory,
    )
    command.init_fabric_client("10.0.0.5")
    assert command.process() is True
    assert ("create_group", "new") in fabric.mutations()


def test_run_plan_skips_fabric_for_kubernetes_only_plans(cluster, factory, fabric):
    plan = Plan().add_action(AnnotateNode(node_name="worker-1", annotations={"liqid.com/gpu": "1"}))
    command = PlanOnlyCommand(Settings(), plan, cluster_client=cluster, fabric_client_factory=factory)
    command.init_fabric_client("10.0.0.5")
    assert command.process() is True
    assert fabric.calls == []
    assert cluster.nodes["worker-1"].annotations == {"liqid.com/gpu": "1"}


def test_run_plan_without_fabric_client_is_an_internal_error(cluster):
    command = PlanOnlyCommand(Settings(), Plan().add_action(CreateGroup(group_name="new")), cluster_client=cluster)
    with pytest.raises(InternalError):
        command.process()
    assert cluster.patches == []
