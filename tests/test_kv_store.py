from didmove.db import KVStore, encode_key


def test_get_missing_and_roundtrip(store):
    assert store.get(('accounts', '0xa')) is None
    store.set(('accounts', '0xa'), {'priv': '0x01', 'data_count': 0})
    assert store.get(('accounts', '0xa')) == {'priv': '0x01', 'data_count': 0}
    store.set(('accounts', '0xa'), {'priv': '0x01', 'data_count': 1})
    assert store.get(('accounts', '0xa'))['data_count'] == 1


def test_set_if_absent_does_not_overwrite(store):
    assert store.set_if_absent(('accounts', 'did', '0xa'), {'type': 0})
    assert not store.set_if_absent(('accounts', 'did', '0xa'), {'type': 3})
    assert store.get(('accounts', 'did', '0xa')) == {'type': 0}


def test_list_prefix_orders_numeric_parts(store):
    for i in (10, 2, 0, 1):
        store.set(('records', '0xa', i), f'r{i}')
    store.set(('records', '0xab', 0), 'other address')
    store.set(('records', '0xa'), 'not under the prefix')
    items = store.list(('records', '0xa'))
    assert [k for k, _ in items] == [('records', '0xa', 0), ('records', '0xa', 1), ('records', '0xa', 2), ('records', '0xa', 10)]
    assert [v for _, v in items] == ['r0', 'r1', 'r2', 'r10']


def test_store_persists_across_instances(tmp_path):
    path = tmp_path / 'nested' / 'kv.db'
    KVStore(path).init_db().set(('accounts', '0xa'), {'data_count': 2})
    assert KVStore(path).get(('accounts', '0xa')) == {'data_count': 2}


def test_encode_key_is_compact():
    assert encode_key(('records', '0xa', 3)) == '["records","0xa",3]'
