import os
import json
import logging
import tempfile
import shutil
from dataclasses import replace

import pytest

from bakultani.models import ChangeDirection, NotificationType, SyncStatus, Theme, TransactionType, default_state
from bakultani.services import Services
from bakultani.storage import JsonFileStore, MemoryStore, Storage
from bakultani.store import Store


def make_services(online=True):
    root = tempfile.mkdtemp(prefix='bakultani_services_')
    logger = logging.getLogger('t')
    storage = Storage(JsonFileStore(os.path.join(root, 'data')), logger, backups_dir=os.path.join(root, 'backups'))
    store = Store(storage.load(is_online=online), logger)
    storage.attach(store)
    services = Services(store, storage, logger)
    return root, services


def cleanup(root):
    shutil.rmtree(root)


def test_add_new_item_records_initial_stock():
    root, s = make_services()
    try:
        it = s.add_new_item('Benih Cabai', 'pack', 12, sku='BC-1', category_id='c1', low_stock_threshold='4', notes='stok awal')
        assert it.warehouse_id == 'w1'
        assert it.quantity == 12
        assert it.low_stock_threshold == 4
        tx = s.state.transactions[-1]
        assert tx.item_id == it.id
        assert tx.type == TransactionType.IN
        assert tx.quantity == 12
        assert tx.id.startswith('t')
        with pytest.raises(ValueError):
            s.add_new_item('  ', 'pack', 1)
        with pytest.raises(ValueError):
            s.add_new_item('Pupuk', 'kg', 0)
        with pytest.raises(ValueError):
            s.add_new_item('Pupuk', 'kg', 1, low_stock_threshold=-2)
    finally:
        cleanup(root)


def test_stock_ops_and_invalid_input_rejected():
    root, s = make_services()
    try:
        it = s.add_new_item('Karung', 'pcs', 10)
        s.stock_in(it.id, 5)
        assert s.state.find_item(it.id).quantity == 15
        s.stock_out(it.id, '4')
        assert s.state.find_item(it.id).quantity == 11
        before = s.state
        for bad in (0, -1, 'abc', None, 100):
            with pytest.raises(ValueError):
                s.stock_out(it.id, bad)
        with pytest.raises(ValueError):
            s.stock_in('missing', 1)
        assert s.state is before
    finally:
        cleanup(root)


def test_stock_out_crossing_threshold_warns_once():
    root, s = make_services()
    try:
        it = s.add_new_item('Pupuk Urea', 'kg', 5, low_stock_threshold=3)
        s.stock_out(it.id, 3)
        warnings = [n for n in s.state.notifications if n.type == NotificationType.WARNING]
        assert len(warnings) == 1
        assert 'Sisa 2 kg' in warnings[0].message
    finally:
        cleanup(root)


def test_adjust_stock():
    root, s = make_services()
    try:
        it = s.add_new_item('Selang', 'm', 10)
        tx = s.adjust_stock(it.id, 2)
        assert tx.type == TransactionType.ADJUSTMENT
        assert tx.quantity == 8
        assert tx.change_direction == ChangeDirection.DOWN
        assert tx.notes == 'Koreksi stok'
        assert s.state.find_item(it.id).quantity == 2
        assert any('berhasil dikoreksi' in n.message for n in s.state.notifications)
        up = s.adjust_stock(it.id, 7, notes='hitung ulang')
        assert up.change_direction == ChangeDirection.UP
        assert up.quantity == 5
        count = len(s.state.transactions)
        assert s.adjust_stock(it.id, 7) is None
        assert len(s.state.transactions) == count
        with pytest.raises(ValueError):
            s.adjust_stock(it.id, -1)
    finally:
        cleanup(root)


def test_update_item_details_keeps_quantity():
    root, s = make_services()
    try:
        it = s.add_new_item('Pacul', 'pcs', 3)
        updated = s.update_item_details(it.id, {'name': 'Pacul Besar', 'low_stock_threshold': 1, 'quantity': 99})
        assert updated.name == 'Pacul Besar'
        assert updated.quantity == 3
        assert updated.created_at == it.created_at
        assert s.state.find_item(it.id) == updated
        with pytest.raises(ValueError):
            s.update_item_details(it.id, {'name': ''})
    finally:
        cleanup(root)


def test_category_crud_and_unlink():
    root, s = make_services(online=False)
    try:
        cat = s.add_category(' Pupuk ')
        assert cat.name == 'Pupuk'
        assert cat.sync_status == SyncStatus.PENDING
        renamed = s.rename_category(cat.id, 'Pupuk Organik')
        assert renamed.name == 'Pupuk Organik'
        it = s.add_new_item('Kompos', 'kg', 20, category_id=cat.id)
        s.delete_category(cat.id)
        assert s.state.find_item(it.id).category_id == ''
        assert all(c.id != cat.id for c in s.state.categories)
        with pytest.raises(ValueError):
            s.add_category('')
        with pytest.raises(ValueError):
            s.delete_category('nope')
    finally:
        cleanup(root)


def test_warehouse_crud_and_selection():
    root, s = make_services()
    try:
        wh = s.add_warehouse('Gudang Timur', '250')
        assert wh.id.startswith('w')
        assert wh.capacity == 250
        s.select_warehouse(wh.id)
        assert s.state.current_warehouse_id == wh.id
        s.update_warehouse(wh.id, 'Gudang Timur Baru')
        assert s.state.current_warehouse().name == 'Gudang Timur Baru'
        s.delete_warehouse(wh.id)
        assert s.state.current_warehouse_id == 'w1'
        with pytest.raises(ValueError):
            s.select_warehouse('nope')
        with pytest.raises(ValueError):
            s.add_warehouse('Gudang', -5)
    finally:
        cleanup(root)


def test_profile_session_and_theme():
    root, s = make_services()
    try:
        user = s.login('Siti', 'Siti@Example.com')
        assert s.state.is_logged_in
        assert user.email == 'siti@example.com'
        s.update_user(position='Manajer')
        assert s.state.user.position == 'Manajer'
        with pytest.raises(ValueError):
            s.update_user(age='30')
        s.set_theme('light')
        assert s.state.theme == Theme.LIGHT
        s.logout()
        assert not s.state.is_logged_in
    finally:
        cleanup(root)


def test_reset_data_keeps_user():
    root, s = make_services()
    try:
        s.login('Siti', 'siti@example.com')
        s.add_new_item('Benih', 'kg', 1)
        s.reset_data()
        assert s.state.items == ()
        assert s.state.user.name == 'Siti'
        assert s.state.is_logged_in
    finally:
        cleanup(root)


def test_backup_and_restore():
    root, s = make_services()
    try:
        it = s.add_new_item('Benih Padi', 'kg', 8)
        path = s.export_backup()
        s.reset_data()
        assert s.state.items == ()
        assert s.restore_backup(path) is True
        assert s.state.find_item(it.id).quantity == 8
        assert s.state.notifications[-1].message == 'Data berhasil dipulihkan!'
    finally:
        cleanup(root)


def test_restore_invalid_backup_reports_error():
    root, s = make_services()
    try:
        s.add_new_item('Benih Padi', 'kg', 8)
        bad = os.path.join(root, 'bad.json')
        with open(bad, 'w', encoding='utf-8') as f:
            json.dump({'items': []}, f)
        items = s.state.items
        assert s.restore_backup(bad) is False
        assert s.state.items == items
        assert s.state.notifications[-1].type == NotificationType.ERROR
    finally:
        cleanup(root)


def test_state_survives_restart():
    root, s = make_services()
    try:
        it = s.add_new_item('Benih Jagung', 'kg', 4)
        s.stock_out(it.id, 1)
        logger = logging.getLogger('t')
        storage = Storage(JsonFileStore(os.path.join(root, 'data')), logger)
        reloaded = storage.load(is_online=True)
        assert reloaded == s.state.without_notifications()
    finally:
        cleanup(root)


def test_dismiss_notification():
    root, s = make_services()
    try:
        n = s.notify('Tersimpan')
        assert s.state.notifications == (n,)
        s.dismiss_notification(n.id)
        assert s.state.notifications == ()
    finally:
        cleanup(root)


def test_new_item_without_current_warehouse_gets_default():
    logger = logging.getLogger('t')
    state = replace(default_state(), warehouses=(), current_warehouse_id=None)
    storage = Storage(MemoryStore(), logger)
    s = Services(Store(state, logger), storage, logger)
    it = s.add_new_item('Sabit', 'pcs', 1)
    assert it.warehouse_id == 'w1'
